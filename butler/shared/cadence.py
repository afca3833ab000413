"""
Billing Cadence Calendar

Computes the next occurrence of a recurring payment date.

Rollover rule: clamp. When the target month is shorter than the current
day of month, the result is the last day of the target month:
- Jan 31 + 1 month -> Feb 28 (Feb 29 in a leap year)
- Feb 29 + 1 year  -> Feb 28
The same rule applies to both cadences.
"""

import calendar
from collections.abc import Mapping
from datetime import date
from enum import Enum
from typing import Final, TypeVar

from butler.shared.exceptions import UnmappedCadenceError

D = TypeVar("D", bound=date)


class Cadence(str, Enum):
    """Recurrence period of a subscription."""

    MONTHLY = "monthly"
    YEARLY = "yearly"


# Select option label -> cadence
DEFAULT_CADENCE_LABELS: Final[dict[str, Cadence]] = {
    "Miesięczny": Cadence.MONTHLY,
    "Roczny": Cadence.YEARLY,
}


def _shift_months(current: D, months: int) -> D:
    month_index = current.month - 1 + months
    year = current.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return current.replace(year=year, month=month, day=min(current.day, last_day))


def next_occurrence(current: D, cadence: Cadence) -> D:
    """
    Advance a date by one cadence period.

    ``datetime`` values keep their time of day and tzinfo.

    Args:
        current: Current due date
        cadence: Recurrence period

    Returns:
        The next due date under the clamp rule
    """
    if cadence is Cadence.MONTHLY:
        return _shift_months(current, 1)
    if cadence is Cadence.YEARLY:
        return _shift_months(current, 12)
    raise ValueError(f"Unknown cadence: {cadence!r}")


def resolve_cadence(
    label: str | None,
    labels: Mapping[str, Cadence | str] | None = None,
    *,
    record_id: str = "",
) -> Cadence:
    """
    Map a human-readable select label to a Cadence.

    Args:
        label: Select option name read from the record
        labels: Label table (default: DEFAULT_CADENCE_LABELS)
        record_id: Record the label was read from, for error context

    Returns:
        The mapped Cadence

    Raises:
        UnmappedCadenceError: If the label is missing or not in the table
    """
    table = DEFAULT_CADENCE_LABELS if labels is None else labels
    if label is None or label not in table:
        raise UnmappedCadenceError(label, record_id=record_id)
    return Cadence(table[label])
