"""
Unit tests for record, property and outcome models.

Tests cover:
- Notion date parsing and formatting
- Property parsing (supported and unsupported types)
- Page parsing and typed accessors
- Patch rendering
- TransitionBatch aggregation
"""

from datetime import date, datetime, timezone

import pytest

from butler.shared.models.outcomes import TransitionBatch, TransitionOutcome
from butler.shared.models.properties import (
    RICH_TEXT_LIMIT,
    DateValue,
    NumberValue,
    Record,
    SelectValue,
    StatusValue,
    TitleValue,
    UnsupportedValue,
    parse_notion_date,
    parse_page,
    parse_property,
    patch_to_notion,
    rich_text_segments,
)
from butler.shared.state_machine import TransitionState
from tests.utils.notion_pages import (
    date_property,
    notion_page,
    number_property,
    select_property,
    status_property,
    title_property,
)


# ============================================================================
# Date Helpers
# ============================================================================

class TestParseNotionDate:
    """Tests for parse_notion_date."""

    def test_all_day_date(self):
        """YYYY-MM-DD parses to a date."""
        result = parse_notion_date("2025-01-15")
        assert result == date(2025, 1, 15)
        assert not isinstance(result, datetime)

    def test_timestamp_with_z(self):
        """Z-suffixed timestamps parse to aware datetimes."""
        assert parse_notion_date("2025-01-15T08:00:00.000Z") == datetime(
            2025, 1, 15, 8, 0, tzinfo=timezone.utc
        )

    def test_empty(self):
        """Empty values parse to None."""
        assert parse_notion_date(None) is None
        assert parse_notion_date("") is None


class TestRichTextSegments:
    """Tests for rich_text_segments."""

    def test_short_text_is_one_segment(self):
        assert rich_text_segments("hello") == [
            {"type": "text", "text": {"content": "hello"}}
        ]

    def test_long_text_is_split(self):
        """Text longer than the segment limit is chunked."""
        segments = rich_text_segments("x" * (RICH_TEXT_LIMIT + 5))

        assert len(segments) == 2
        assert len(segments[0]["text"]["content"]) == RICH_TEXT_LIMIT
        assert segments[1]["text"]["content"] == "xxxxx"


# ============================================================================
# Property Parsing
# ============================================================================

class TestParseProperty:
    """Tests for parse_property."""

    def test_title(self):
        assert parse_property(title_property("Spotify")) == TitleValue(text="Spotify")

    def test_date(self):
        assert parse_property(date_property("2025-01-15")) == DateValue(start=date(2025, 1, 15))

    def test_empty_date(self):
        """A cleared date parses to a DateValue without start."""
        assert parse_property(date_property(None)).start is None

    def test_number(self):
        assert parse_property(number_property(29.99)) == NumberValue(number=29.99)

    def test_select_and_status(self):
        """select and status keep their own tags."""
        assert parse_property(select_property("Roczny")) == SelectValue(name="Roczny")
        assert parse_property(status_property("Done")) == StatusValue(name="Done")

    def test_unsupported_type(self):
        """Unknown property types are tagged unsupported."""
        value = parse_property({"id": "x", "type": "formula", "formula": {}})

        assert isinstance(value, UnsupportedValue)
        assert value.notion_type == "formula"

    def test_unsupported_value_cannot_be_written(self):
        with pytest.raises(TypeError, match="formula"):
            UnsupportedValue(notion_type="formula").to_notion()


class TestParsePage:
    """Tests for parse_page and Record accessors."""

    def test_parse_full_page(self):
        page = notion_page(
            {
                "Nazwa": title_property("Spotify"),
                "Nast. płatność": date_property("2025-01-15"),
                "Cena": number_property(10),
                "Częstość": select_property("Miesięczny"),
            },
            page_id="sub-1",
        )

        record = parse_page(page)

        assert record.id == "sub-1"
        assert record.get_text("Nazwa") == "Spotify"
        assert record.get_date("Nast. płatność") == date(2025, 1, 15)
        assert record.get_number("Cena") == 10
        assert record.get_select("Częstość") == "Miesięczny"
        assert record.created_time == "2026-10-01T08:00:00.000Z"

    def test_accessors_return_none_for_wrong_type(self):
        """Typed accessors never raise."""
        record = Record(id="r", properties={"Cena": TitleValue(text="10")})

        assert record.get_number("Cena") is None
        assert record.get_date("missing") is None
        assert record.get_status("Cena") is None

    def test_rejects_non_page(self):
        with pytest.raises(ValueError, match="database"):
            parse_page({"object": "database", "id": "db"})


class TestPatchToNotion:
    """Tests for patch rendering."""

    def test_renders_each_type(self):
        patch = {
            "Nast. płatność": DateValue(start=date(2025, 2, 15)),
            "Status": StatusValue(name="Done"),
            "Kind": SelectValue(name="Home"),
            "Cena": NumberValue(number=12.5),
        }

        assert patch_to_notion(patch) == {
            "Nast. płatność": {"date": {"start": "2025-02-15"}},
            "Status": {"status": {"name": "Done"}},
            "Kind": {"select": {"name": "Home"}},
            "Cena": {"number": 12.5},
        }

    def test_cleared_date(self):
        assert DateValue().to_notion() == {"date": None}


# ============================================================================
# Outcome Models
# ============================================================================

class TestTransitionBatch:
    """Tests for TransitionBatch aggregation."""

    @staticmethod
    def _outcome(record_id: str, state: TransitionState) -> TransitionOutcome:
        outcome = TransitionOutcome(record=Record(id=record_id))
        if state is TransitionState.MATCHED:
            return outcome
        if state is TransitionState.FAILED:
            return outcome.advance(TransitionState.FAILED, error_reason="boom")
        return outcome.advance(TransitionState.TRANSITIONING).advance(state)

    def test_succeeded_and_failed_keep_order(self):
        batch = TransitionBatch(outcomes=(
            self._outcome("a", TransitionState.UPDATED),
            self._outcome("b", TransitionState.FAILED),
            self._outcome("c", TransitionState.UPDATED),
        ))

        assert [o.record_id for o in batch.succeeded] == ["a", "c"]
        assert [o.record_id for o in batch.failed] == ["b"]
        assert batch.count == 3
        assert batch.all_succeeded is False

    def test_empty_batch(self):
        """An empty batch has nothing failed."""
        batch = TransitionBatch()

        assert batch.count == 0
        assert batch.all_succeeded is True
        assert batch.has_more is False

    def test_success_summary_includes_new_values(self):
        outcome = TransitionOutcome(record=Record(id="a")).advance(
            TransitionState.TRANSITIONING
        ).advance(
            TransitionState.UPDATED,
            new_values={"Due": DateValue(start=date(2025, 2, 1))},
        )

        assert outcome.to_summary() == {
            "recordId": "a",
            "success": True,
            "newValues": {"Due": {"date": {"start": "2025-02-01"}}},
        }
