"""
Subscription Payment Rules

Filter and transition rules for the subscriptions database:
- which records are due (next payment date equals today)
- how a due record's next payment date advances (by its cadence)

Subscriptions Database Pattern:
- Title:  subscription name
- Date:   next payment date
- Number: amount (reporting only, never written)
- Select: cadence label (e.g. "Miesięczny", "Roczny")
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from zoneinfo import ZoneInfo

import structlog

from butler.shared.cadence import Cadence, next_occurrence, resolve_cadence
from butler.shared.config import Settings
from butler.shared.engine import TransitionFn
from butler.shared.exceptions import StoreErrorKind, UpdateError
from butler.shared.filters import CompoundFilter, due_on
from butler.shared.models.properties import DateValue, PropertyPatch, Record

log = structlog.get_logger()


@dataclass(frozen=True)
class SubscriptionProperties:
    """Property names of the subscriptions database."""

    name: str
    next_payment: str
    amount: str
    cadence: str

    @classmethod
    def from_settings(cls, settings: Settings) -> "SubscriptionProperties":
        return cls(
            name=settings.subscription_name_property,
            next_payment=settings.subscription_next_payment_property,
            amount=settings.subscription_amount_property,
            cadence=settings.subscription_cadence_property,
        )


def today_in(timezone_name: str, now: datetime | None = None) -> date:
    """
    Calendar date in the given time zone.

    Args:
        timezone_name: IANA time zone name
        now: Moment to convert (defaults to the current time)

    Returns:
        Local calendar date
    """
    zone = ZoneInfo(timezone_name)
    current = now.astimezone(zone) if now else datetime.now(zone)
    return current.date()


def build_due_filter(properties: SubscriptionProperties, day: date) -> CompoundFilter:
    """Subscriptions whose next payment falls on ``day``."""
    return due_on(properties.next_payment, day)


def make_next_payment_transition(
    properties: SubscriptionProperties,
    cadence_labels: Mapping[str, Cadence | str] | None = None,
) -> TransitionFn:
    """
    Build the transition advancing a subscription's next payment date.

    The returned function raises UnmappedCadenceError for an unknown
    cadence label and UpdateError when the record has no payment date.

    Args:
        properties: Database property names
        cadence_labels: Label table (default: built-in table)

    Returns:
        Transition function for the engine
    """

    def advance_next_payment(record: Record) -> PropertyPatch:
        cadence = resolve_cadence(
            record.get_select(properties.cadence),
            cadence_labels,
            record_id=record.id,
        )

        current = record.get_date(properties.next_payment)
        if current is None:
            raise UpdateError(
                record.id,
                f"Missing '{properties.next_payment}' date",
                StoreErrorKind.INVALID,
            )

        next_payment = next_occurrence(current, cadence)

        log.debug(
            "next_payment_computed",
            record_id=record.id,
            cadence=cadence.value,
            current=current.isoformat(),
            next_payment=next_payment.isoformat(),
        )

        return {properties.next_payment: DateValue(start=next_payment)}

    return advance_next_payment
