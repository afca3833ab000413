"""
Filter Compiler

Builds two-level compound filters (AND of criteria or OR-groups of
criteria) over typed record properties.

A compiled CompoundFilter can be:
- rendered to the Notion database query ``filter`` payload
- evaluated against a Record in memory

Criteria originate from trusted configuration, so an operator paired with
an incompatible operand is a programming error and fails at construction.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Final

import structlog

from butler.shared.exceptions import IncompatibleCriterionError
from butler.shared.models.properties import (
    DateValue,
    NumberValue,
    PropertyValue,
    Record,
    SelectValue,
    StatusValue,
    TitleValue,
    format_notion_date,
)

log = structlog.get_logger()


class FilterOperator(str, Enum):
    """Supported comparison operators."""

    EQUALS = "equals"
    ON_OR_BEFORE = "on_or_before"
    ON_OR_AFTER = "on_or_after"
    IS_NOT_EMPTY = "is_not_empty"


class PropertyType(str, Enum):
    """Property types a criterion can target."""

    TITLE = "title"
    DATE = "date"
    NUMBER = "number"
    SELECT = "select"
    STATUS = "status"


# Operators allowed per property type
ALLOWED_OPERATORS: Final[dict[PropertyType, frozenset[FilterOperator]]] = {
    PropertyType.TITLE: frozenset({FilterOperator.EQUALS, FilterOperator.IS_NOT_EMPTY}),
    PropertyType.DATE: frozenset({
        FilterOperator.EQUALS,
        FilterOperator.ON_OR_BEFORE,
        FilterOperator.ON_OR_AFTER,
        FilterOperator.IS_NOT_EMPTY,
    }),
    PropertyType.NUMBER: frozenset({FilterOperator.EQUALS, FilterOperator.IS_NOT_EMPTY}),
    PropertyType.SELECT: frozenset({FilterOperator.EQUALS, FilterOperator.IS_NOT_EMPTY}),
    PropertyType.STATUS: frozenset({FilterOperator.EQUALS, FilterOperator.IS_NOT_EMPTY}),
}

# Operand types accepted per property type (for operators other than is_not_empty)
OPERAND_TYPES: Final[dict[PropertyType, tuple[type, ...]]] = {
    PropertyType.TITLE: (str,),
    PropertyType.DATE: (date,),  # datetime is a date
    PropertyType.NUMBER: (int, float),
    PropertyType.SELECT: (str,),
    PropertyType.STATUS: (str,),
}

# Value model each property type reads from a record
VALUE_MODELS: Final[dict[PropertyType, type]] = {
    PropertyType.TITLE: TitleValue,
    PropertyType.DATE: DateValue,
    PropertyType.NUMBER: NumberValue,
    PropertyType.SELECT: SelectValue,
    PropertyType.STATUS: StatusValue,
}


@dataclass(frozen=True)
class FilterCriterion:
    """
    A single typed comparison against one property.

    ``operand`` must be None for is_not_empty, a date/datetime for date
    properties, a number for number properties and a string otherwise.
    """

    property_name: str
    property_type: PropertyType
    operator: FilterOperator
    operand: Any = None

    def __post_init__(self) -> None:
        if self.operator not in ALLOWED_OPERATORS[self.property_type]:
            raise IncompatibleCriterionError(
                self.property_name,
                f"operator '{self.operator.value}' not allowed on "
                f"{self.property_type.value} properties",
            )

        if self.operator is FilterOperator.IS_NOT_EMPTY:
            if self.operand not in (None, True):
                raise IncompatibleCriterionError(
                    self.property_name, "is_not_empty takes no operand"
                )
            return

        expected = OPERAND_TYPES[self.property_type]
        if isinstance(self.operand, bool) or not isinstance(self.operand, expected):
            raise IncompatibleCriterionError(
                self.property_name,
                f"{self.property_type.value} operand expected, "
                f"got {type(self.operand).__name__}",
            )

    def to_notion(self) -> dict[str, Any]:
        """Render as a Notion property filter object."""
        if self.operator is FilterOperator.IS_NOT_EMPTY:
            condition: Any = True
        elif isinstance(self.operand, date):
            condition = format_notion_date(self.operand)
        else:
            condition = self.operand
        return {
            "property": self.property_name,
            self.property_type.value: {self.operator.value: condition},
        }

    def matches(self, record: Record) -> bool:
        """Evaluate against a record. Wrong-type or missing values never match."""
        value = record.get(self.property_name)
        if not isinstance(value, VALUE_MODELS[self.property_type]):
            return False

        actual = _comparable_value(value)
        if self.operator is FilterOperator.IS_NOT_EMPTY:
            return actual not in (None, "")
        if actual is None:
            return False

        if self.property_type is PropertyType.DATE:
            left, right = _align_dates(actual, self.operand)
            if self.operator is FilterOperator.ON_OR_BEFORE:
                return left <= right
            if self.operator is FilterOperator.ON_OR_AFTER:
                return left >= right
            return left == right

        if self.property_type is PropertyType.NUMBER:
            return float(actual) == float(self.operand)
        return actual == self.operand


@dataclass(frozen=True)
class OrGroup:
    """Disjunction of criteria. Only criteria may be nested here."""

    criteria: tuple[FilterCriterion, ...]

    def __post_init__(self) -> None:
        if not self.criteria:
            raise IncompatibleCriterionError("<or>", "an OR-group needs at least one criterion")
        for criterion in self.criteria:
            if not isinstance(criterion, FilterCriterion):
                raise IncompatibleCriterionError(
                    "<or>", "OR-groups may only contain criteria"
                )

    def to_notion(self) -> dict[str, Any]:
        return {"or": [criterion.to_notion() for criterion in self.criteria]}

    def matches(self, record: Record) -> bool:
        return any(criterion.matches(record) for criterion in self.criteria)


Clause = FilterCriterion | OrGroup


@dataclass(frozen=True)
class CompoundFilter:
    """Conjunction of clauses: the top level of a compiled filter."""

    clauses: tuple[Clause, ...]

    def to_notion(self) -> dict[str, Any]:
        """Render as the ``filter`` payload of a Notion database query."""
        return {"and": [clause.to_notion() for clause in self.clauses]}

    def matches(self, record: Record) -> bool:
        return all(clause.matches(record) for clause in self.clauses)


def _comparable_value(value: PropertyValue) -> Any:
    if isinstance(value, TitleValue):
        return value.text
    if isinstance(value, DateValue):
        return value.start
    if isinstance(value, NumberValue):
        return value.number
    return value.name


def _align_dates(left: date, right: date) -> tuple[Any, Any]:
    """Compare datetimes when both sides carry a time, calendar dates otherwise."""
    if isinstance(left, datetime) and isinstance(right, datetime):
        return _as_aware(left), _as_aware(right)
    return _as_date(left), _as_date(right)


def _as_aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _as_date(value: date) -> date:
    return value.date() if isinstance(value, datetime) else value


def compile_filter(
    clauses: Iterable[Clause],
    *,
    fallback_property: str | None = None,
    fallback_type: PropertyType = PropertyType.DATE,
) -> CompoundFilter:
    """
    Compile criteria and OR-groups into a CompoundFilter.

    An empty clause list compiles to "fallback_property is not empty" so
    the filter matches every record that has the reference property set.

    Args:
        clauses: Criteria and OR-groups to AND together
        fallback_property: Reference property used when clauses is empty
        fallback_type: Type of the reference property

    Returns:
        CompoundFilter

    Raises:
        IncompatibleCriterionError: If a clause is malformed, or clauses is
            empty and no fallback property was given
    """
    compiled = tuple(clauses)

    for clause in compiled:
        if not isinstance(clause, (FilterCriterion, OrGroup)):
            raise IncompatibleCriterionError(
                "<and>", f"unsupported clause type {type(clause).__name__}"
            )

    if not compiled:
        if fallback_property is None:
            raise IncompatibleCriterionError(
                "<and>", "empty criteria require a fallback property"
            )
        compiled = (
            FilterCriterion(fallback_property, fallback_type, FilterOperator.IS_NOT_EMPTY),
        )
        log.debug("filter_fallback_applied", property=fallback_property)

    return CompoundFilter(clauses=compiled)


# =====================================================
# Filter shapes used by the flows
# =====================================================


def due_on(date_property: str, day: date) -> CompoundFilter:
    """Records whose date property equals ``day``."""
    return compile_filter([
        FilterCriterion(date_property, PropertyType.DATE, FilterOperator.EQUALS, day),
    ])


def status_move_filter(
    *,
    status_property: str,
    watched_statuses: Sequence[str],
    date_property: str,
    now: datetime,
    status_type: PropertyType = PropertyType.STATUS,
) -> CompoundFilter:
    """
    Records in one of the watched statuses whose date is on or before now.

    Args:
        status_property: Name of the status property
        watched_statuses: Status whitelist (at least one)
        date_property: Name of the date property
        now: Cut-off moment
        status_type: STATUS or SELECT, depending on the property type

    Returns:
        CompoundFilter
    """
    return compile_filter([
        OrGroup(tuple(
            FilterCriterion(status_property, status_type, FilterOperator.EQUALS, status)
            for status in watched_statuses
        )),
        FilterCriterion(date_property, PropertyType.DATE, FilterOperator.ON_OR_BEFORE, now),
    ])


def task_summary_filter(
    *,
    created_property: str,
    status_property: str,
    start: date | None = None,
    end: date | None = None,
    statuses: Sequence[str] = (),
) -> CompoundFilter:
    """
    Records created in a range and in one of the given statuses.

    Every part is optional; with none given the filter falls back to
    "created property is not empty".
    """
    clauses: list[Clause] = []

    if start is not None:
        clauses.append(FilterCriterion(
            created_property, PropertyType.DATE, FilterOperator.ON_OR_AFTER, start
        ))
    if end is not None:
        clauses.append(FilterCriterion(
            created_property, PropertyType.DATE, FilterOperator.ON_OR_BEFORE, end
        ))

    if statuses:
        clauses.append(FilterCriterion(
            status_property, PropertyType.SELECT, FilterOperator.IS_NOT_EMPTY
        ))
        equalities = tuple(
            FilterCriterion(status_property, PropertyType.SELECT, FilterOperator.EQUALS, status)
            for status in statuses
        )
        clauses.append(equalities[0] if len(equalities) == 1 else OrGroup(equalities))

    return compile_filter(clauses, fallback_property=created_property)
