"""
CheckSubscriptions Lambda Handler

Main entry point for the scheduled subscription payment check.
Advances the next payment date of every subscription due today and sends
one payment summary.

Trigger: EventBridge Scheduled Rule (e.g., cron(0 6 * * ? *) for daily 6am)
Output: Notion page updates, one TelegramSendNotification invocation

Flow:
1. Parse invocation payload (optional databaseRef / filterParams)
2. Resolve database id and Notion token from SSM
3. Query subscriptions whose next payment date is today
4. Advance each subscription's next payment date by its cadence
5. Send one summary with the total amount of advanced subscriptions
6. Return summary of the run
"""

from dataclasses import dataclass
from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
import structlog

from butler.shared.config import Settings, get_settings
from butler.shared.engine import TransitionEngine
from butler.shared.exceptions import ConfigError, NotificationError, QueryError
from butler.shared.invocation import (
    InvocationInput,
    error_response,
    remaining_time_guard,
    respond,
)
from butler.shared.logging import configure_logging
from butler.shared.models.outcomes import TransitionBatch
from butler.shared.tools.notifications import LambdaNotifier, Notifier
from butler.shared.tools.notion import NotionRecordStore, RecordStore, get_notion_client
from butler.shared.tools.ssm import ParameterStore
from lambdas.check_subscriptions.subscriptions import (
    SubscriptionProperties,
    build_due_filter,
    make_next_payment_transition,
    today_in,
)

configure_logging(get_settings().log_level)

log = structlog.get_logger()


class SubscriptionFilterParams(BaseModel):
    """Optional filter overrides."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    due_date: date | None = Field(
        default=None,
        alias="dueDate",
        description="Process subscriptions due on this day instead of today",
    )


class CheckSubscriptionsInput(InvocationInput):
    """Invocation payload for the subscription check."""

    filter_params: SubscriptionFilterParams = Field(
        default_factory=SubscriptionFilterParams,
        alias="filterParams",
    )


@dataclass
class Dependencies:
    """Collaborators built per invocation."""

    store: RecordStore
    notifier: Notifier


def _build_dependencies(settings: Settings, database_ref: str | None) -> Dependencies:
    """
    Build the record store and notifier for one invocation.

    Raises:
        ConfigError: If the token or database id cannot be read
    """
    parameters = ParameterStore(settings=settings)
    database_id = database_ref or parameters.get_value(
        settings.subscriptions_database_parameter
    )
    properties = SubscriptionProperties.from_settings(settings)

    return Dependencies(
        store=NotionRecordStore(get_notion_client(parameters, settings=settings), database_id),
        notifier=LambdaNotifier(
            label_property=properties.name,
            amount_property=properties.amount,
            settings=settings,
        ),
    )


def run_check_subscriptions(
    request: CheckSubscriptionsInput,
    *,
    store: RecordStore,
    notifier: Notifier,
    settings: Settings,
    today: date | None = None,
    should_stop: Any = None,
) -> TransitionBatch:
    """
    Advance every subscription due on the given day.

    Args:
        request: Parsed invocation payload
        store: Subscriptions record store
        notifier: Payment summary notifier
        settings: Settings
        today: Day to process (default: today in the configured time zone)
        should_stop: Optional stop check for the engine

    Returns:
        TransitionBatch

    Raises:
        QueryError: If the due subscriptions cannot be queried
        NotificationError: If the summary cannot be delivered
    """
    properties = SubscriptionProperties.from_settings(settings)
    due_day = request.filter_params.due_date or today or today_in(settings.timezone)

    log.info("subscription_check_started", due_date=due_day.isoformat())

    engine = TransitionEngine(store, notifier)
    return engine.run(
        build_due_filter(properties, due_day),
        make_next_payment_transition(properties, settings.cadence_labels),
        notify=True,
        should_stop=should_stop,
    )


def _batch_body(batch: TransitionBatch) -> dict[str, Any]:
    return {
        "matched": batch.count,
        "updated": len(batch.succeeded),
        "failed": len(batch.failed),
        "hasMore": batch.has_more,
        "outcomes": [outcome.to_summary() for outcome in batch.outcomes],
    }


def lambda_handler(event: dict[str, Any] | None, context: Any) -> dict[str, Any]:
    """
    Main Lambda handler for the scheduled subscription check.

    Args:
        event: EventBridge scheduled event or {databaseRef, filterParams}
        context: Lambda context

    Returns:
        Dict with statusCode and JSON body
    """
    settings = get_settings()

    try:
        payload = event if isinstance(event, dict) else {}
        request = CheckSubscriptionsInput.model_validate(payload.get("detail") or payload)
    except ValidationError as e:
        log.warning("subscription_check_invalid_input", error=str(e))
        return error_response(400, "Invalid input", details=str(e))

    log.info(
        "subscription_check_invoked",
        has_database_ref=request.database_ref is not None,
        due_date=request.filter_params.due_date,
    )

    try:
        deps = _build_dependencies(settings, request.database_ref)
        batch = run_check_subscriptions(
            request,
            store=deps.store,
            notifier=deps.notifier,
            settings=settings,
            should_stop=remaining_time_guard(context, settings.min_remaining_time_ms),
        )
    except ConfigError as e:
        log.error("subscription_check_config_failed", parameter=e.parameter, error=str(e))
        return error_response(500, "Configuration unavailable", parameter=e.parameter)
    except QueryError as e:
        log.error("subscription_check_query_failed", kind=e.kind.value, error=str(e))
        return error_response(400, "Failed to query subscriptions", kind=e.kind.value)
    except NotificationError as e:
        log.error("subscription_check_notification_failed", error=str(e))
        details = _batch_body(e.batch) if isinstance(e.batch, TransitionBatch) else {}
        return error_response(400, "Failed to send payment summary", **details)
    except Exception as e:
        log.exception("subscription_check_failed", error=str(e))
        return error_response(500, "Unexpected error while checking subscriptions")

    log.info(
        "subscription_check_completed",
        matched=batch.count,
        updated=len(batch.succeeded),
        failed=len(batch.failed),
    )

    return respond(
        200 if batch.all_succeeded else 400,
        success=batch.all_succeeded,
        notified=bool(batch.succeeded),
        **_batch_body(batch),
    )
