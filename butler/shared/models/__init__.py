# Shared Models
"""
Pydantic models for records, typed properties and transition outcomes.
"""

from butler.shared.models.properties import (
    DateValue,
    NumberValue,
    PropertyPatch,
    PropertyValue,
    Record,
    SelectValue,
    StatusValue,
    TitleValue,
    UnsupportedValue,
    parse_page,
    parse_property,
    patch_to_notion,
)
from butler.shared.models.outcomes import TransitionBatch, TransitionOutcome

__all__ = [
    # Properties
    "DateValue",
    "NumberValue",
    "PropertyPatch",
    "PropertyValue",
    "SelectValue",
    "StatusValue",
    "TitleValue",
    "UnsupportedValue",
    # Records
    "Record",
    "parse_page",
    "parse_property",
    "patch_to_notion",
    # Outcomes
    "TransitionBatch",
    "TransitionOutcome",
]
