"""
Unit tests for the transition engine.

Tests cover:
- Subscription payment scenarios (all due, none due, partial failure)
- Per-record isolation of transition and update failures
- Query failure and notification failure propagation
- Cancellation through should_stop
"""

from datetime import date

import pytest

from butler.shared.engine import TransitionEngine
from butler.shared.exceptions import (
    NotificationError,
    QueryError,
    StoreErrorKind,
)
from butler.shared.models.properties import DateValue
from butler.shared.state_machine import TransitionState
from lambdas.check_subscriptions.subscriptions import (
    SubscriptionProperties,
    build_due_filter,
    make_next_payment_transition,
)
from tests.mocks.fake_store import FakeNotifier, FakeRecordStore
from tests.utils.notion_pages import MONTHLY_LABEL, NEXT_PAYMENT, subscription_record


# ============================================================================
# Test Fixtures
# ============================================================================

@pytest.fixture
def properties(settings) -> SubscriptionProperties:
    return SubscriptionProperties.from_settings(settings)


@pytest.fixture
def run_subscriptions(properties, today):
    """Run the subscription transition against a store and notifier."""

    def _run(store, notifier, **kwargs):
        engine = TransitionEngine(store, notifier)
        return engine.run(
            build_due_filter(properties, today),
            make_next_payment_transition(properties),
            notify=True,
            **kwargs,
        )

    return _run


# ============================================================================
# Subscription Scenarios
# ============================================================================

class TestSubscriptionScenarios:
    """End-to-end engine runs over the fake store."""

    def test_all_due_records_advance_and_notify_once(
        self, run_subscriptions, due_subscriptions, not_due_subscription
    ):
        """Two due subscriptions advance; one summary covers both."""
        store = FakeRecordStore([*due_subscriptions, not_due_subscription])
        notifier = FakeNotifier()

        batch = run_subscriptions(store, notifier)

        assert [o.record_id for o in batch.outcomes] == ["sub-a", "sub-b"]
        assert batch.all_succeeded is True
        assert store.records["sub-a"].get_date(NEXT_PAYMENT) == date(2025, 2, 15)
        assert store.records["sub-b"].get_date(NEXT_PAYMENT) == date(2026, 1, 15)
        assert store.records["sub-later"].get_date(NEXT_PAYMENT) == date(2025, 1, 16)

        assert len(notifier.calls) == 1
        assert [o.record_id for o in notifier.calls[0]] == ["sub-a", "sub-b"]

    def test_no_due_records_skip_notification(self, run_subscriptions, not_due_subscription):
        """Nothing matches: no updates, no notification."""
        store = FakeRecordStore([not_due_subscription])
        notifier = FakeNotifier()

        batch = run_subscriptions(store, notifier)

        assert batch.count == 0
        assert store.updates == []
        assert notifier.calls == []

    def test_partial_failure_notifies_successes_only(self, run_subscriptions, today):
        """One failing update does not stop the others."""
        store = FakeRecordStore(
            [
                subscription_record("sub-a", "A", today, 10, MONTHLY_LABEL),
                subscription_record("sub-b", "B", today, 20, MONTHLY_LABEL),
                subscription_record("sub-c", "C", today, 30, MONTHLY_LABEL),
            ],
            fail_updates={"sub-b"},
        )
        notifier = FakeNotifier()

        batch = run_subscriptions(store, notifier)

        assert [o.record_id for o in batch.succeeded] == ["sub-a", "sub-c"]
        assert [o.record_id for o in batch.failed] == ["sub-b"]
        assert batch.failed[0].error_kind == StoreErrorKind.RATE_LIMITED
        assert batch.failed[0].state == TransitionState.FAILED
        assert store.records["sub-b"].get_date(NEXT_PAYMENT) == today
        assert [o.record_id for o in notifier.calls[0]] == ["sub-a", "sub-c"]

    def test_unmapped_cadence_is_isolated(self, run_subscriptions, today):
        """An unknown cadence fails that record without an update call."""
        store = FakeRecordStore([
            subscription_record("sub-a", "A", today, 10, "Tygodniowy"),
            subscription_record("sub-b", "B", today, 20, MONTHLY_LABEL),
        ])

        batch = run_subscriptions(store, FakeNotifier())

        failed = batch.failed[0]
        assert failed.record_id == "sub-a"
        assert failed.error_kind == StoreErrorKind.INVALID
        assert "Tygodniowy" in failed.error_reason
        assert store.updated_ids == ["sub-b"]

    def test_amounts_come_from_matched_record(self, run_subscriptions, due_subscriptions):
        """Outcomes keep the record as matched, amount included."""
        notifier = FakeNotifier()

        run_subscriptions(FakeRecordStore(due_subscriptions), notifier)

        amounts = [o.record.get_number("Cena") for o in notifier.calls[0]]
        assert sum(amounts) == 30

    def test_new_values_hold_the_patch(self, run_subscriptions, due_subscriptions):
        batch = run_subscriptions(FakeRecordStore(due_subscriptions), FakeNotifier())

        assert batch.outcomes[0].new_values == {
            NEXT_PAYMENT: DateValue(start=date(2025, 2, 15)),
        }


# ============================================================================
# Failure Propagation
# ============================================================================

class TestFailurePropagation:
    """Run-level failures."""

    def test_query_failure_raises_without_updates(self, run_subscriptions, due_subscriptions):
        """A query failure aborts before any update."""
        store = FakeRecordStore(
            due_subscriptions,
            query_error=QueryError("unauthorized", StoreErrorKind.PERMISSION),
        )
        notifier = FakeNotifier()

        with pytest.raises(QueryError) as exc_info:
            run_subscriptions(store, notifier)

        assert exc_info.value.kind == StoreErrorKind.PERMISSION
        assert store.updates == []
        assert notifier.calls == []

    def test_notification_failure_carries_batch(self, run_subscriptions, due_subscriptions):
        """Updates stay applied; the error carries the batch."""
        store = FakeRecordStore(due_subscriptions)
        notifier = FakeNotifier(error=NotificationError("throttled"))

        with pytest.raises(NotificationError) as exc_info:
            run_subscriptions(store, notifier)

        batch = exc_info.value.batch
        assert batch.all_succeeded is True
        assert batch.count == 2
        assert store.records["sub-a"].get_date(NEXT_PAYMENT) == date(2025, 2, 15)

    def test_notify_without_notifier_raises(self, properties, today, due_subscriptions):
        engine = TransitionEngine(FakeRecordStore(due_subscriptions))

        with pytest.raises(NotificationError, match="no notifier"):
            engine.run(
                build_due_filter(properties, today),
                make_next_payment_transition(properties),
                notify=True,
            )

    def test_notify_false_never_calls_notifier(self, properties, today, due_subscriptions):
        notifier = FakeNotifier()
        engine = TransitionEngine(FakeRecordStore(due_subscriptions), notifier)

        batch = engine.run(
            build_due_filter(properties, today),
            make_next_payment_transition(properties),
        )

        assert batch.count == 2
        assert notifier.calls == []

    def test_has_more_is_reported(self, run_subscriptions, due_subscriptions):
        """Only the first page is processed; has_more is surfaced."""
        batch = run_subscriptions(
            FakeRecordStore(due_subscriptions, has_more=True), FakeNotifier()
        )

        assert batch.has_more is True
        assert batch.count == 2


# ============================================================================
# Cancellation
# ============================================================================

class TestCancellation:
    """should_stop handling."""

    def test_stop_fails_remaining_records(self, run_subscriptions, due_subscriptions):
        """Records after the stop are failed as cancelled and never updated."""
        checks = iter([False, True])
        store = FakeRecordStore(due_subscriptions)
        notifier = FakeNotifier()

        batch = run_subscriptions(store, notifier, should_stop=lambda: next(checks))

        assert [o.record_id for o in batch.succeeded] == ["sub-a"]
        cancelled = batch.failed[0]
        assert cancelled.record_id == "sub-b"
        assert cancelled.error_kind == StoreErrorKind.CANCELLED
        assert store.updated_ids == ["sub-a"]
        assert [o.record_id for o in notifier.calls[0]] == ["sub-a"]

    def test_stop_before_first_record(self, run_subscriptions, due_subscriptions):
        """Nothing succeeds, so nothing is sent."""
        notifier = FakeNotifier()

        batch = run_subscriptions(
            FakeRecordStore(due_subscriptions), notifier, should_stop=lambda: True
        )

        assert len(batch.failed) == 2
        assert notifier.calls == []


# ============================================================================
# Transport Failures
# ============================================================================

def _subscription_page(page_id: str, name: str, due: str) -> dict:
    from tests.utils.notion_pages import (
        AMOUNT,
        CADENCE,
        NAME,
        date_property,
        notion_page,
        number_property,
        select_property,
        title_property,
    )

    return notion_page(
        {
            NAME: title_property(name),
            NEXT_PAYMENT: date_property(due),
            AMOUNT: number_property(10),
            CADENCE: select_property(MONTHLY_LABEL),
        },
        page_id=page_id,
    )


class TestTransportFailures:
    """Connection errors from notion-client over the real record store."""

    def test_dropped_connection_fails_one_record(self, run_subscriptions):
        """A connection reset on one update leaves the other records running."""
        from unittest.mock import MagicMock

        import httpx

        from butler.shared.tools.notion import NotionRecordStore

        client = MagicMock()
        client.request.return_value = {
            "object": "list",
            "results": [
                _subscription_page("a", "A", "2025-01-15"),
                _subscription_page("b", "B", "2025-01-15"),
                _subscription_page("c", "C", "2025-01-15"),
            ],
            "has_more": False,
            "next_cursor": None,
        }

        def update(page_id, properties):
            if page_id == "b":
                raise httpx.ConnectError("connection reset")
            return _subscription_page(page_id, page_id.upper(), "2025-02-15")

        client.pages.update.side_effect = update
        notifier = FakeNotifier()

        batch = run_subscriptions(NotionRecordStore(client, "subs-db-0001"), notifier)

        attempted = [c.kwargs["page_id"] for c in client.pages.update.call_args_list]
        assert attempted == ["a", "b", "c"]
        assert [o.record_id for o in batch.succeeded] == ["a", "c"]
        failed = batch.failed[0]
        assert failed.record_id == "b"
        assert failed.error_kind == StoreErrorKind.OTHER
        assert "connection reset" in failed.error_reason
        assert [o.record_id for o in notifier.calls[0]] == ["a", "c"]
