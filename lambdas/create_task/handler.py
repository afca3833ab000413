"""
CreateTask Lambda Handler

Creates a task page in the tasks database.

Trigger: direct invocation with {"title": ..., "message": ...}
Output: {success, message, taskId}
"""

from typing import Any

from pydantic import Field, ValidationError
import structlog

from butler.shared.config import Settings, get_settings
from butler.shared.exceptions import ConfigError, RecordStoreError
from butler.shared.invocation import InvocationInput, error_response, respond
from butler.shared.logging import configure_logging
from butler.shared.markdown import markdown_rich_text
from butler.shared.models.properties import Record, TitleValue
from butler.shared.tools.notion import NotionRecordStore, get_notion_client
from butler.shared.tools.ssm import ParameterStore

configure_logging(get_settings().log_level)

log = structlog.get_logger()


class CreateTaskInput(InvocationInput):
    """Invocation payload for task creation."""

    title: str | None = Field(default=None)
    message: str | None = Field(default=None)


def build_task_properties(title: str, message: str, settings: Settings) -> dict[str, Any]:
    """
    Notion ``properties`` payload of a new task.

    The message is markdown; emphasis, code and links become annotations.
    """
    return {
        settings.task_title_property: TitleValue(text=title).to_notion(),
        settings.task_description_property: {"rich_text": markdown_rich_text(message)},
    }


def create_task(
    title: str,
    message: str,
    *,
    store: NotionRecordStore,
    settings: Settings,
) -> Record:
    """
    Create one task page.

    Raises:
        RecordStoreError: If Notion rejects the page
    """
    log.info("creating_task", title=title)
    return store.create(build_task_properties(title, message, settings))


def lambda_handler(event: dict[str, Any] | None, context: Any) -> dict[str, Any]:
    """
    Main Lambda handler for task creation.

    Args:
        event: {"title": str, "message": str, "databaseRef"?: str}
        context: Lambda context

    Returns:
        Dict with statusCode and JSON body
    """
    settings = get_settings()

    try:
        request = CreateTaskInput.model_validate(event if isinstance(event, dict) else {})
    except ValidationError as e:
        log.warning("create_task_invalid_input", error=str(e))
        return error_response(400, "Invalid input", details=str(e))

    if not request.title or not request.message:
        log.error(
            "create_task_missing_parameters",
            title=bool(request.title),
            message=bool(request.message),
        )
        return error_response(
            400, "Missing required parameters: title and message are required"
        )

    try:
        parameters = ParameterStore(settings=settings)
        database_id = request.database_ref or parameters.get_value(
            settings.tasks_database_parameter
        )
        store = NotionRecordStore(get_notion_client(parameters, settings=settings), database_id)
        record = create_task(request.title, request.message, store=store, settings=settings)
    except ConfigError as e:
        log.error("create_task_config_failed", parameter=e.parameter, error=str(e))
        return error_response(500, "Configuration unavailable", parameter=e.parameter)
    except RecordStoreError as e:
        log.error("create_task_failed", kind=e.kind.value, error=str(e))
        return error_response(500, "Failed to create task in Notion")
    except Exception as e:
        log.exception("create_task_failed_unexpectedly", error=str(e))
        return error_response(500, "Failed to create task in Notion")

    log.info("task_created", task_id=record.id)

    return respond(
        200,
        success=True,
        message="Task created successfully",
        taskId=record.id,
    )
