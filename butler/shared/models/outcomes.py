"""
Transition Outcome Models

Per-record outcomes and the batch produced by one engine run.
Outcomes live for the duration of a run and are never persisted.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from butler.shared.exceptions import StoreErrorKind
from butler.shared.models.properties import PropertyPatch, Record, patch_to_notion
from butler.shared.state_machine import TransitionState, validate_transition


class TransitionOutcome(BaseModel):
    """
    Result of transitioning one record.

    ``record`` is the record as matched by the query; numeric fields used
    only for reporting (amounts) are read from it, never from the patch.
    """

    model_config = ConfigDict(frozen=True)

    record: Record = Field(..., description="Record as returned by the query")
    state: TransitionState = Field(default=TransitionState.MATCHED)
    new_values: PropertyPatch | None = Field(default=None, description="Applied patch")
    updated_record: Record | None = Field(default=None, description="Record after update")
    error_reason: str | None = Field(default=None)
    error_kind: StoreErrorKind | None = Field(default=None)

    @property
    def record_id(self) -> str:
        return self.record.id

    @property
    def success(self) -> bool:
        return self.state is TransitionState.UPDATED

    def advance(self, new_state: TransitionState, **changes: Any) -> "TransitionOutcome":
        """
        Return a copy moved to ``new_state``.

        Raises:
            InvalidStateTransitionError: If the move is not allowed
        """
        validate_transition(self.state, new_state)
        return self.model_copy(update={"state": new_state, **changes})

    def to_summary(self) -> dict[str, Any]:
        """JSON-safe summary for a response body."""
        summary: dict[str, Any] = {
            "recordId": self.record_id,
            "success": self.success,
        }
        if self.success and self.new_values is not None:
            summary["newValues"] = patch_to_notion(self.new_values)
        if not self.success:
            summary["error"] = self.error_reason
            summary["errorKind"] = self.error_kind.value if self.error_kind else None
        return summary


class TransitionBatch(BaseModel):
    """Ordered outcomes of one engine run."""

    model_config = ConfigDict(frozen=True)

    outcomes: tuple[TransitionOutcome, ...] = Field(default=())
    has_more: bool = Field(
        default=False,
        description="Store reported further pages that were not processed",
    )

    @property
    def succeeded(self) -> list[TransitionOutcome]:
        return [outcome for outcome in self.outcomes if outcome.success]

    @property
    def failed(self) -> list[TransitionOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.success]

    @property
    def all_succeeded(self) -> bool:
        return not self.failed

    @property
    def count(self) -> int:
        return len(self.outcomes)
