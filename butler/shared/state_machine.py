"""
Record Transition State Machine

Defines the lifecycle of a single matched record within one engine run:

    MATCHED -> TRANSITIONING -> UPDATED
                             -> FAILED
    MATCHED -> FAILED  (run stopped before the record was scheduled)
"""

from enum import Enum
from typing import Final

import structlog

from butler.shared.exceptions import InvalidStateTransitionError

log = structlog.get_logger()


class TransitionState(str, Enum):
    """Per-record transition state."""

    MATCHED = "MATCHED"
    """Returned by the query, not yet processed."""

    TRANSITIONING = "TRANSITIONING"
    """New values being computed and written."""

    UPDATED = "UPDATED"
    """Store accepted the patch."""

    FAILED = "FAILED"
    """Transition or update failed; the record keeps its old values."""

    @property
    def is_terminal(self) -> bool:
        """Check if this is a terminal state (no outgoing transitions)."""
        return self in TERMINAL_STATES


TERMINAL_STATES: Final[frozenset[TransitionState]] = frozenset({
    TransitionState.UPDATED,
    TransitionState.FAILED,
})

# Key: current state, Value: set of allowed next states
VALID_TRANSITIONS: Final[dict[TransitionState, frozenset[TransitionState]]] = {
    TransitionState.MATCHED: frozenset({
        TransitionState.TRANSITIONING,
        TransitionState.FAILED,
    }),
    TransitionState.TRANSITIONING: frozenset({
        TransitionState.UPDATED,
        TransitionState.FAILED,
    }),
    TransitionState.UPDATED: frozenset(),  # Terminal
    TransitionState.FAILED: frozenset(),   # Terminal
}


def validate_transition(current_state: TransitionState, new_state: TransitionState) -> None:
    """
    Validate that a state transition is allowed.

    Args:
        current_state: Current record state
        new_state: Desired next state

    Raises:
        InvalidStateTransitionError: If the transition is not allowed
    """
    allowed = VALID_TRANSITIONS.get(current_state, frozenset())

    if new_state not in allowed:
        log.warning(
            "invalid_state_transition",
            current_state=current_state.value,
            new_state=new_state.value,
            allowed_transitions=[s.value for s in allowed],
        )
        raise InvalidStateTransitionError(
            current_state=current_state.value,
            new_state=new_state.value,
            allowed_transitions=sorted(s.value for s in allowed),
        )
