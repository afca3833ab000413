"""
Record and Property Models

Pydantic models for Notion pages and their typed properties.

A property value is a tagged union discriminated by ``type``:
- title:  plain text
- date:   calendar date or datetime (optional end)
- number: float
- select: option name
- status: option name
Any other Notion property type parses to ``UnsupportedValue`` so callers
handle it explicitly instead of reading a missing key.
"""

from datetime import date, datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
import structlog

log = structlog.get_logger()

# Notion limits a single rich text segment to this many characters
RICH_TEXT_LIMIT = 2000


def parse_notion_date(value: str | None) -> date | datetime | None:
    """
    Parse a Notion date string.

    Notion returns ``YYYY-MM-DD`` for all-day dates and a full ISO
    timestamp otherwise.

    Args:
        value: Raw date string

    Returns:
        date, datetime, or None when the value is empty
    """
    if not value:
        return None
    if len(value) == 10:
        return date.fromisoformat(value)
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def format_notion_date(value: date | datetime) -> str:
    """Format a date for a Notion payload."""
    return value.isoformat()


def rich_text_segments(content: str) -> list[dict[str, Any]]:
    """Split plain text into Notion rich text segments."""
    return [
        {"type": "text", "text": {"content": content[i : i + RICH_TEXT_LIMIT]}}
        for i in range(0, len(content), RICH_TEXT_LIMIT)
    ]


class TitleValue(BaseModel):
    """Title property."""

    model_config = ConfigDict(frozen=True)

    type: Literal["title"] = "title"
    text: str = ""

    def to_notion(self) -> dict[str, Any]:
        return {"title": rich_text_segments(self.text)}


class DateValue(BaseModel):
    """Date property."""

    model_config = ConfigDict(frozen=True)

    type: Literal["date"] = "date"
    start: date | datetime | None = None
    end: date | datetime | None = None

    def to_notion(self) -> dict[str, Any]:
        if self.start is None:
            return {"date": None}
        payload: dict[str, Any] = {"start": format_notion_date(self.start)}
        if self.end is not None:
            payload["end"] = format_notion_date(self.end)
        return {"date": payload}


class NumberValue(BaseModel):
    """Number property."""

    model_config = ConfigDict(frozen=True)

    type: Literal["number"] = "number"
    number: float | None = None

    def to_notion(self) -> dict[str, Any]:
        return {"number": self.number}


class SelectValue(BaseModel):
    """Select property."""

    model_config = ConfigDict(frozen=True)

    type: Literal["select"] = "select"
    name: str | None = None

    def to_notion(self) -> dict[str, Any]:
        return {"select": {"name": self.name} if self.name is not None else None}


class StatusValue(BaseModel):
    """Status property."""

    model_config = ConfigDict(frozen=True)

    type: Literal["status"] = "status"
    name: str | None = None

    def to_notion(self) -> dict[str, Any]:
        return {"status": {"name": self.name} if self.name is not None else None}


class UnsupportedValue(BaseModel):
    """Property of a type this system does not interpret."""

    model_config = ConfigDict(frozen=True)

    type: Literal["unsupported"] = "unsupported"
    notion_type: str

    def to_notion(self) -> dict[str, Any]:
        raise TypeError(f"Cannot write unsupported property type '{self.notion_type}'")


PropertyValue = Annotated[
    Union[TitleValue, DateValue, NumberValue, SelectValue, StatusValue, UnsupportedValue],
    Field(discriminator="type"),
]

# Property name -> new value
PropertyPatch = dict[str, PropertyValue]


class Record(BaseModel):
    """
    A single database page.

    Typed accessors return None for a missing property or one of another
    type; they never raise.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Opaque page identifier")
    properties: dict[str, PropertyValue] = Field(default_factory=dict)
    url: str | None = Field(default=None, description="Page URL")
    created_time: str | None = Field(default=None, description="ISO creation timestamp")
    last_edited_time: str | None = Field(default=None, description="ISO edit timestamp")

    def get(self, name: str) -> PropertyValue | None:
        """Get a property value of any type."""
        return self.properties.get(name)

    def get_text(self, name: str) -> str | None:
        value = self.properties.get(name)
        return value.text if isinstance(value, TitleValue) else None

    def get_date(self, name: str) -> date | datetime | None:
        value = self.properties.get(name)
        return value.start if isinstance(value, DateValue) else None

    def get_number(self, name: str) -> float | None:
        value = self.properties.get(name)
        return value.number if isinstance(value, NumberValue) else None

    def get_select(self, name: str) -> str | None:
        value = self.properties.get(name)
        return value.name if isinstance(value, SelectValue) else None

    def get_status(self, name: str) -> str | None:
        value = self.properties.get(name)
        return value.name if isinstance(value, StatusValue) else None


def parse_property(raw: dict[str, Any]) -> PropertyValue:
    """
    Parse one Notion property object into a PropertyValue.

    Args:
        raw: Property object from a Notion page response

    Returns:
        Typed property value (UnsupportedValue for unknown types)
    """
    kind = raw.get("type", "")

    if kind == "title":
        parts = raw.get("title") or []
        return TitleValue(text="".join(part.get("plain_text", "") for part in parts))

    if kind == "date":
        payload = raw.get("date") or {}
        return DateValue(
            start=parse_notion_date(payload.get("start")),
            end=parse_notion_date(payload.get("end")),
        )

    if kind == "number":
        return NumberValue(number=raw.get("number"))

    if kind in ("select", "status"):
        option = raw.get(kind) or {}
        name = option.get("name")
        return SelectValue(name=name) if kind == "select" else StatusValue(name=name)

    return UnsupportedValue(notion_type=kind or "unknown")


def parse_page(page: dict[str, Any]) -> Record:
    """
    Parse a Notion page object into a Record.

    Args:
        page: Page object from a query, retrieve, create or update response

    Returns:
        Record with typed properties

    Raises:
        ValueError: If the object is not a full page
    """
    if page.get("object") != "page" or "properties" not in page:
        raise ValueError(f"Unexpected object type: {page.get('object')!r}")

    return Record(
        id=page["id"],
        properties={
            name: parse_property(raw) for name, raw in page["properties"].items()
        },
        url=page.get("url"),
        created_time=page.get("created_time"),
        last_edited_time=page.get("last_edited_time"),
    )


def patch_to_notion(patch: PropertyPatch) -> dict[str, Any]:
    """Render a property patch as the ``properties`` payload of a page update."""
    return {name: value.to_notion() for name, value in patch.items()}
