"""
SummarizeTasks Lambda Handler

Read-only listing of tasks, optionally narrowed by creation date range
and status. With no narrowing the filter falls back to "Created time is
not empty", so every task is returned.

Trigger: direct invocation
Output: {success, count, tasks}
"""

from datetime import date
from typing import Any

from pydantic import BaseModel, Field, ValidationError
import structlog

from butler.shared.config import Settings, get_settings
from butler.shared.exceptions import ConfigError, QueryError
from butler.shared.filters import task_summary_filter
from butler.shared.invocation import InvocationInput, error_response, respond
from butler.shared.logging import configure_logging
from butler.shared.models.properties import Record
from butler.shared.tools.notion import NotionRecordStore, RecordStore, get_notion_client
from butler.shared.tools.ssm import ParameterStore

configure_logging(get_settings().log_level)

log = structlog.get_logger()


class SummarizeTasksInput(InvocationInput):
    """Invocation payload for the task summary."""

    start_date: date | None = Field(default=None, alias="startDate")
    end_date: date | None = Field(default=None, alias="endDate")
    statuses: tuple[str, ...] = Field(default=())


class TaskSummary(BaseModel):
    """One task in the response."""

    task_id: str = Field(..., serialization_alias="taskId")
    title: str
    status: str
    created_time: str | None = Field(default=None, serialization_alias="createdTime")
    last_edited_time: str | None = Field(default=None, serialization_alias="lastEditedTime")
    url: str | None = None

    @classmethod
    def from_record(cls, record: Record, settings: Settings) -> "TaskSummary":
        return cls(
            task_id=record.id,
            title=record.get_text(settings.task_title_property) or "Untitled",
            status=record.get_select(settings.task_status_property) or "Unknown",
            created_time=record.created_time,
            last_edited_time=record.last_edited_time,
            url=record.url,
        )


def summarize_tasks(
    request: SummarizeTasksInput,
    *,
    store: RecordStore,
    settings: Settings,
) -> list[TaskSummary]:
    """
    Query tasks matching the request.

    Raises:
        QueryError: If the tasks cannot be queried
    """
    compound_filter = task_summary_filter(
        created_property=settings.task_created_property,
        status_property=settings.task_status_property,
        start=request.start_date,
        end=request.end_date,
        statuses=request.statuses,
    )

    log.info("summarizing_tasks", filter=compound_filter.to_notion())

    page = store.query(compound_filter)
    if page.has_more:
        log.warning("query_results_truncated", processed=page.count)

    return [TaskSummary.from_record(record, settings) for record in page.records]


def lambda_handler(event: dict[str, Any] | None, context: Any) -> dict[str, Any]:
    """
    Main Lambda handler for the task summary.

    Args:
        event: {databaseId?, startDate?, endDate?, statuses?}
        context: Lambda context

    Returns:
        Dict with statusCode and JSON body
    """
    settings = get_settings()

    try:
        request = SummarizeTasksInput.model_validate(event if isinstance(event, dict) else {})
    except ValidationError as e:
        log.warning("summarize_tasks_invalid_input", error=str(e))
        return error_response(400, "Invalid input", details=str(e))

    parameters = ParameterStore(settings=settings)

    try:
        database_id = request.database_ref or parameters.get_value(
            settings.tasks_database_parameter
        )
    except ConfigError as e:
        log.error("summarize_tasks_database_missing", parameter=e.parameter, error=str(e))
        return error_response(400, "Database ID is required", parameter=e.parameter)

    try:
        store = NotionRecordStore(get_notion_client(parameters, settings=settings), database_id)
        tasks = summarize_tasks(request, store=store, settings=settings)
    except ConfigError as e:
        log.error("summarize_tasks_config_failed", parameter=e.parameter, error=str(e))
        return error_response(500, "Configuration unavailable", parameter=e.parameter)
    except QueryError as e:
        log.error("summarize_tasks_query_failed", kind=e.kind.value, error=str(e))
        return error_response(500, "Failed to summarize tasks from Notion")
    except Exception as e:
        log.exception("summarize_tasks_failed", error=str(e))
        return error_response(500, "Failed to summarize tasks from Notion")

    log.info("tasks_summarized", count=len(tasks))

    return respond(
        200,
        success=True,
        count=len(tasks),
        tasks=[task.model_dump(by_alias=True) for task in tasks],
    )
