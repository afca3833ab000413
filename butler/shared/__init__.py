# Shared Infrastructure for Notion Butler
"""
Shared infrastructure components for all Notion Butler flows.

This package provides:
- Cadence calendar (next payment date computation)
- Filter compiler (typed AND-of-OR filters over record properties)
- Transition engine and per-record state machine
- Pydantic models for records, properties and outcomes
- Tool implementations for SSM, Notion and notifications
- Configuration management
- Custom exceptions
"""

from butler.shared.cadence import Cadence, next_occurrence, resolve_cadence
from butler.shared.config import Settings, get_settings
from butler.shared.exceptions import (
    ButlerError,
    ConfigError,
    IncompatibleCriterionError,
    NotificationError,
    QueryError,
    StoreErrorKind,
    UnmappedCadenceError,
    UpdateError,
)
from butler.shared.state_machine import TransitionState, VALID_TRANSITIONS, validate_transition

__all__ = [
    # Cadence
    "Cadence",
    "next_occurrence",
    "resolve_cadence",
    # State machine
    "TransitionState",
    "VALID_TRANSITIONS",
    "validate_transition",
    # Exceptions
    "ButlerError",
    "ConfigError",
    "IncompatibleCriterionError",
    "NotificationError",
    "QueryError",
    "StoreErrorKind",
    "UnmappedCadenceError",
    "UpdateError",
    # Config
    "Settings",
    "get_settings",
]
