"""
MovePages Lambda Handler

Moves overdue pages from a set of watched statuses to a target status.

Trigger: EventBridge Scheduled Rule with {"ssmPath": "<config path>"}
Output: Notion page updates (no notification)

Flow:
1. Parse invocation payload (ssmPath, databaseRef, filterParams)
2. Load the move configuration from SSM and apply overrides
3. Query pages in a watched status whose date is on or before now
4. Set each page's status to the target status
5. Return the titles of moved pages
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import Field, ValidationError
import structlog

from butler.shared.config import Settings, get_settings
from butler.shared.engine import TransitionEngine
from butler.shared.exceptions import ConfigError, QueryError
from butler.shared.invocation import (
    InvocationInput,
    error_response,
    remaining_time_guard,
    respond,
)
from butler.shared.logging import configure_logging
from butler.shared.models.outcomes import TransitionBatch
from butler.shared.tools.notion import NotionRecordStore, RecordStore, get_notion_client
from butler.shared.tools.ssm import ParameterStore
from lambdas.move_pages.query_builder import (
    MoveFilterParams,
    MovePagesConfig,
    apply_overrides,
    build_move_filter,
    make_status_transition,
)

configure_logging(get_settings().log_level)

log = structlog.get_logger()


class MovePagesInput(InvocationInput):
    """Invocation payload for the status move."""

    ssm_path: str | None = Field(default=None, alias="ssmPath")
    filter_params: MoveFilterParams | None = Field(default=None, alias="filterParams")


def load_move_config(
    request: MovePagesInput,
    parameters: ParameterStore,
    settings: Settings,
) -> MovePagesConfig:
    """
    Load the stored configuration and merge invocation overrides.

    Raises:
        ConfigError: If the configuration is missing or invalid
    """
    path = request.ssm_path or settings.move_pages_config_parameter
    stored = parameters.get_config(path, MovePagesConfig)
    return apply_overrides(
        stored,
        database_ref=request.database_ref,
        params=request.filter_params,
    )


def _build_store(
    config: MovePagesConfig,
    parameters: ParameterStore,
    settings: Settings,
) -> RecordStore:
    client = get_notion_client(parameters, settings=settings, auth=config.access_token)
    return NotionRecordStore(client, config.database_id)


def run_move_pages(
    config: MovePagesConfig,
    *,
    store: RecordStore,
    now: datetime | None = None,
    should_stop: Any = None,
) -> TransitionBatch:
    """
    Move every overdue page in a watched status to the target status.

    Args:
        config: Effective move configuration
        store: Record store of the configured database
        now: Cut-off moment (default: current UTC time)
        should_stop: Optional stop check for the engine

    Returns:
        TransitionBatch

    Raises:
        QueryError: If the pages cannot be queried
    """
    rules = config.config
    cutoff = now or datetime.now(timezone.utc)

    log.info(
        "move_pages_started",
        watched_statuses=list(rules.status.watched_statuses),
        target_status=rules.status.target_status,
        cutoff=cutoff.isoformat(),
    )

    engine = TransitionEngine(store)
    return engine.run(
        build_move_filter(rules, cutoff),
        make_status_transition(rules),
        should_stop=should_stop,
    )


def moved_titles(batch: TransitionBatch, title_property: str) -> list[str]:
    """Titles of the moved pages, read from the updated records."""
    titles = []
    for outcome in batch.succeeded:
        record = outcome.updated_record or outcome.record
        titles.append(record.get_text(title_property) or "Untitled")
    return titles


def lambda_handler(event: dict[str, Any] | None, context: Any) -> dict[str, Any]:
    """
    Main Lambda handler for the status move.

    Args:
        event: {"ssmPath": ...} and/or {databaseRef, filterParams}
        context: Lambda context

    Returns:
        Dict with statusCode and JSON body
    """
    settings = get_settings()

    try:
        request = MovePagesInput.model_validate(event if isinstance(event, dict) else {})
    except ValidationError as e:
        log.warning("move_pages_invalid_input", error=str(e))
        return error_response(400, "Invalid input", details=str(e))

    try:
        parameters = ParameterStore(settings=settings)
        config = load_move_config(request, parameters, settings)
        store = _build_store(config, parameters, settings)
    except ConfigError as e:
        log.error("move_pages_config_failed", parameter=e.parameter, error=str(e))
        return error_response(500, "Configuration unavailable", parameter=e.parameter)

    try:
        batch = run_move_pages(
            config,
            store=store,
            should_stop=remaining_time_guard(context, settings.min_remaining_time_ms),
        )
    except QueryError as e:
        log.error("move_pages_query_failed", kind=e.kind.value, error=str(e))
        return error_response(400, "Failed while moving pages", kind=e.kind.value)
    except Exception as e:
        log.exception("move_pages_failed", error=str(e))
        return error_response(500, "Unexpected error while moving pages")

    titles = moved_titles(batch, settings.task_title_property)

    log.info(
        "move_pages_completed",
        matched=batch.count,
        moved=len(titles),
        failed=len(batch.failed),
    )

    return respond(
        200 if batch.all_succeeded else 400,
        success=batch.all_succeeded,
        matched=batch.count,
        moved=len(titles),
        failed=len(batch.failed),
        hasMore=batch.has_more,
        movedTitles=titles,
        outcomes=[outcome.to_summary() for outcome in batch.outcomes],
    )
