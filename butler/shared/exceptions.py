"""
Custom Exceptions for Notion Butler

All exceptions follow the pattern of specific, actionable errors
with context needed for debugging and logging.

Taxonomy:
- ConfigError: credential or configuration value missing/invalid (fatal)
- QueryError: the record store rejected or could not serve a filter (fatal)
- UpdateError: a single record could not be transitioned (per record)
- UnmappedCadenceError: cadence label missing from the lookup table (per record)
- NotificationError: the batch summary could not be delivered (run failure)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class StoreErrorKind(str, Enum):
    """Distinguishable record store failure kinds."""

    NOT_FOUND = "not_found"
    PERMISSION = "permission"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    INVALID = "invalid"
    CANCELLED = "cancelled"
    OTHER = "other"


class ButlerError(Exception):
    """Base exception for Notion Butler."""

    def __init__(self, message: str, **context: Any) -> None:
        self.message = message
        self.context = context
        super().__init__(message)

    def __str__(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


@dataclass
class ConfigError(ButlerError):
    """Credential or configuration value is missing, empty or malformed."""

    parameter: str
    reason: str

    def __init__(self, parameter: str, reason: str) -> None:
        self.parameter = parameter
        self.reason = reason
        super().__init__(
            f"Configuration '{parameter}' unavailable: {reason}",
            parameter=parameter,
        )


@dataclass
class RecordStoreError(ButlerError):
    """Record store operation failed."""

    operation: str  # "query", "update", "create"
    reason: str
    kind: StoreErrorKind = StoreErrorKind.OTHER

    def __init__(
        self,
        operation: str,
        reason: str,
        kind: StoreErrorKind = StoreErrorKind.OTHER,
        **context: Any,
    ) -> None:
        self.operation = operation
        self.reason = reason
        self.kind = kind
        super().__init__(
            f"Record store {operation} failed: {reason}",
            operation=operation,
            kind=kind.value,
            **context,
        )


class QueryError(RecordStoreError):
    """The store rejected or could not serve the filter. Fatal to a run."""

    def __init__(
        self,
        reason: str,
        kind: StoreErrorKind = StoreErrorKind.OTHER,
    ) -> None:
        super().__init__("query", reason, kind)


class UpdateError(RecordStoreError):
    """A single record could not be transitioned. Recorded per record."""

    def __init__(
        self,
        record_id: str,
        reason: str,
        kind: StoreErrorKind = StoreErrorKind.OTHER,
    ) -> None:
        self.record_id = record_id
        super().__init__("update", reason, kind, record_id=record_id)


class UnmappedCadenceError(UpdateError):
    """A cadence label is not present in the cadence lookup table."""

    def __init__(self, label: str | None, record_id: str = "") -> None:
        self.label = label
        super().__init__(
            record_id,
            f"Unsupported cadence: {label!r}",
            StoreErrorKind.INVALID,
        )


@dataclass
class NotificationError(ButlerError):
    """Batch summary could not be delivered. Record updates already took effect."""

    reason: str
    batch: Any = None

    def __init__(self, reason: str, batch: Any = None) -> None:
        self.reason = reason
        self.batch = batch
        super().__init__(f"Notification delivery failed: {reason}")


@dataclass
class IncompatibleCriterionError(ButlerError):
    """Filter criterion pairs an operator with an incompatible operand."""

    property_name: str
    detail: str

    def __init__(self, property_name: str, detail: str) -> None:
        self.property_name = property_name
        self.detail = detail
        super().__init__(
            f"Invalid filter criterion on '{property_name}': {detail}",
            property_name=property_name,
        )


@dataclass
class InvalidStateTransitionError(ButlerError):
    """Attempted invalid record state transition."""

    current_state: str
    new_state: str
    allowed_transitions: list[str]

    def __init__(
        self,
        current_state: str,
        new_state: str,
        allowed_transitions: list[str],
    ) -> None:
        self.current_state = current_state
        self.new_state = new_state
        self.allowed_transitions = allowed_transitions
        super().__init__(
            f"Cannot transition from '{current_state}' to '{new_state}'. "
            f"Allowed transitions: {allowed_transitions}",
            current_state=current_state,
            new_state=new_state,
            allowed_transitions=allowed_transitions,
        )
