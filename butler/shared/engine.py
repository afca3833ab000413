"""
Transition Engine

Runs one filter-driven transition over a record store:

1. Query the store once with a compiled filter (first page only)
2. For each matched record, in order:
   a. compute the property patch with the flow's transition function
   b. write it with store.update
   c. record an UPDATED or FAILED outcome
3. Optionally hand the successful outcomes to the notifier, once

A query failure aborts the run. A per-record ButlerError is captured in
that record's outcome and processing continues with the next record.
Updates are strictly sequential; nothing is retried here.
"""

from collections.abc import Callable, Sequence

import structlog

from butler.shared.exceptions import ButlerError, NotificationError, StoreErrorKind
from butler.shared.filters import CompoundFilter
from butler.shared.models.outcomes import TransitionBatch, TransitionOutcome
from butler.shared.models.properties import PropertyPatch, Record
from butler.shared.state_machine import TransitionState
from butler.shared.tools.notifications import Notifier
from butler.shared.tools.notion import RecordStore

log = structlog.get_logger()

# Computes the new property values of one record; raises ButlerError to fail it
TransitionFn = Callable[[Record], PropertyPatch]


class TransitionEngine:
    """
    Sequential transition pipeline over a record store.

    Args:
        store: Record store gateway for this run
        notifier: Notification aggregator (required when notify=True)
    """

    def __init__(self, store: RecordStore, notifier: Notifier | None = None) -> None:
        self.store = store
        self.notifier = notifier

    def run(
        self,
        compound_filter: CompoundFilter,
        transition: TransitionFn,
        *,
        notify: bool = False,
        should_stop: Callable[[], bool] | None = None,
    ) -> TransitionBatch:
        """
        Query, transition and optionally notify.

        Args:
            compound_filter: Compiled filter selecting the records
            transition: Computes each record's property patch
            notify: Send one summary for the successful records
            should_stop: Checked before each record; once true, the
                remaining records are failed as cancelled

        Returns:
            TransitionBatch with one outcome per matched record

        Raises:
            QueryError: If the query fails (no partial batch)
            NotificationError: If the summary cannot be delivered; the
                exception carries the batch
        """
        page = self.store.query(compound_filter)

        log.info(
            "transition_run_started",
            matched=page.count,
            has_more=page.has_more,
            notify=notify,
        )

        if page.has_more:
            log.warning(
                "query_results_truncated",
                processed=page.count,
                next_cursor=page.next_cursor,
            )

        outcomes = self._transition_all(page.records, transition, should_stop)
        batch = TransitionBatch(outcomes=tuple(outcomes), has_more=page.has_more)

        log.info(
            "transition_run_completed",
            matched=batch.count,
            updated=len(batch.succeeded),
            failed=len(batch.failed),
        )

        if notify and batch.succeeded:
            self._notify(batch)

        return batch

    def _transition_all(
        self,
        records: Sequence[Record],
        transition: TransitionFn,
        should_stop: Callable[[], bool] | None,
    ) -> list[TransitionOutcome]:
        outcomes: list[TransitionOutcome] = []
        stopped = False

        for record in records:
            matched = TransitionOutcome(record=record)

            if not stopped and should_stop is not None and should_stop():
                stopped = True
                log.warning("transition_run_stopped", remaining=len(records) - len(outcomes))

            if stopped:
                outcomes.append(matched.advance(
                    TransitionState.FAILED,
                    error_reason="Run stopped before the record was scheduled",
                    error_kind=StoreErrorKind.CANCELLED,
                ))
                continue

            outcomes.append(self._transition_one(matched, transition))

        return outcomes

    def _transition_one(
        self,
        matched: TransitionOutcome,
        transition: TransitionFn,
    ) -> TransitionOutcome:
        outcome = matched.advance(TransitionState.TRANSITIONING)
        record_id = outcome.record_id

        try:
            patch = transition(outcome.record)
            updated = self.store.update(record_id, patch)
        except ButlerError as e:
            kind = getattr(e, "kind", StoreErrorKind.OTHER)
            log.error(
                "record_transition_failed",
                record_id=record_id,
                operation="update",
                error_type=type(e).__name__,
                error=str(e),
            )
            return outcome.advance(
                TransitionState.FAILED,
                error_reason=getattr(e, "reason", e.message),
                error_kind=kind,
            )

        log.info("record_updated", record_id=record_id, properties=list(patch))

        return outcome.advance(
            TransitionState.UPDATED,
            new_values=patch,
            updated_record=updated,
        )

    def _notify(self, batch: TransitionBatch) -> None:
        if self.notifier is None:
            raise NotificationError("no notifier configured", batch=batch)

        try:
            self.notifier.notify(batch.succeeded)
        except NotificationError as e:
            log.error(
                "batch_notification_failed",
                updated=len(batch.succeeded),
                error=str(e),
            )
            raise NotificationError(e.reason, batch=batch) from e
