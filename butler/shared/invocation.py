"""
Lambda Invocation Helpers

Request parsing and response envelopes shared by the Lambda handlers.

Every handler returns ``{"statusCode": int, "body": str}`` where body is a
JSON object with at least ``success``:
- 200: run completed and every record transitioned
- 400: invalid input, query failure, failed records, notification failure
- 500: configuration failure or unexpected error
"""

import json
from collections.abc import Callable
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
import structlog

log = structlog.get_logger()


class InvocationInput(BaseModel):
    """
    Common invocation payload.

    An empty payload means "use the configured defaults".
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    database_ref: str | None = Field(
        default=None,
        validation_alias=AliasChoices("databaseRef", "databaseId", "database_ref"),
        description="Database id overriding the configured one",
    )


def respond(status_code: int, **body: Any) -> dict[str, Any]:
    """
    Build a Lambda response envelope.

    Args:
        status_code: HTTP-style status code
        **body: JSON body fields (``success`` should be among them)

    Returns:
        Dict with statusCode and JSON-serialized body
    """
    return {
        "statusCode": status_code,
        "body": json.dumps(body, default=str, ensure_ascii=False),
    }


def error_response(status_code: int, error: str, **details: Any) -> dict[str, Any]:
    """Failure envelope: ``{"success": false, "error": ..., **details}``."""
    return respond(status_code, success=False, error=error, **details)


def remaining_time_guard(
    context: Any,
    min_remaining_ms: int,
) -> Callable[[], bool] | None:
    """
    Build a stop check from the Lambda context.

    Args:
        context: Lambda context (may be None when invoked locally)
        min_remaining_ms: Stop once less time than this remains

    Returns:
        Callable returning True when the run should stop, or None when the
        context cannot report remaining time
    """
    get_remaining = getattr(context, "get_remaining_time_in_millis", None)
    if not callable(get_remaining):
        return None

    def should_stop() -> bool:
        remaining = get_remaining()
        if remaining < min_remaining_ms:
            log.warning("lambda_time_running_out", remaining_ms=remaining)
            return True
        return False

    return should_stop
