"""
Query Builder for Status Moves

Constructs the filter and transition for moving overdue pages between
statuses.

Config Pattern (SSM JSON at /NotionButler/<path>):
    {
      "accessToken": "<optional integration token>",
      "databaseId": "<database id>",
      "config": {
        "date":   {"property": "Due"},
        "status": {
          "property": "Status",
          "watchedStatuses": ["Doing", "Blocked"],
          "targetStatus": "Done"
        }
      }
    }

A page is moved when its status is one of the watched statuses AND its
date is on or before now.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
import structlog

from butler.shared.engine import TransitionFn
from butler.shared.filters import CompoundFilter, PropertyType, status_move_filter
from butler.shared.models.properties import PropertyPatch, Record, SelectValue, StatusValue

log = structlog.get_logger()


class DateConfig(BaseModel):
    """Date criterion settings."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    property: str = Field(..., min_length=1)


class StatusConfig(BaseModel):
    """Status whitelist and target."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    property: str = Field(..., min_length=1)
    watched_statuses: tuple[str, ...] = Field(..., alias="watchedStatuses", min_length=1)
    target_status: str = Field(..., alias="targetStatus", min_length=1)
    type: Literal["status", "select"] = Field(
        default="status",
        description="Notion property type of the status property",
    )


class MoveRules(BaseModel):
    """Date and status rules of the move."""

    model_config = ConfigDict(frozen=True)

    date: DateConfig
    status: StatusConfig


class MovePagesConfig(BaseModel):
    """Move-pages configuration stored in SSM."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    access_token: str | None = Field(default=None, alias="accessToken")
    database_id: str = Field(..., alias="databaseId", min_length=1)
    config: MoveRules


class MoveFilterParams(BaseModel):
    """Per-invocation overrides of the stored rules."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    watched_statuses: tuple[str, ...] | None = Field(
        default=None, alias="watchedStatuses", min_length=1
    )
    target_status: str | None = Field(default=None, alias="targetStatus", min_length=1)
    date_property: str | None = Field(default=None, alias="dateProperty", min_length=1)
    status_property: str | None = Field(default=None, alias="statusProperty", min_length=1)


def apply_overrides(
    config: MovePagesConfig,
    *,
    database_ref: str | None = None,
    params: MoveFilterParams | None = None,
) -> MovePagesConfig:
    """
    Merge invocation overrides into the stored configuration.

    Args:
        config: Configuration read from SSM
        database_ref: Database id override
        params: Filter overrides

    Returns:
        Effective configuration
    """
    rules = config.config
    if params is not None:
        status = rules.status.model_copy(update={
            key: value
            for key, value in {
                "property": params.status_property,
                "watched_statuses": params.watched_statuses,
                "target_status": params.target_status,
            }.items()
            if value is not None
        })
        date = rules.date.model_copy(
            update={"property": params.date_property} if params.date_property else {}
        )
        rules = MoveRules(date=date, status=status)

    return config.model_copy(update={
        "database_id": database_ref or config.database_id,
        "config": rules,
    })


def _status_type(status: StatusConfig) -> PropertyType:
    return PropertyType.STATUS if status.type == "status" else PropertyType.SELECT


def build_move_filter(rules: MoveRules, now: datetime) -> CompoundFilter:
    """Pages in a watched status whose date is on or before ``now``."""
    return status_move_filter(
        status_property=rules.status.property,
        watched_statuses=rules.status.watched_statuses,
        date_property=rules.date.property,
        now=now,
        status_type=_status_type(rules.status),
    )


def make_status_transition(rules: MoveRules) -> TransitionFn:
    """Build the transition setting the target status."""
    value_model = StatusValue if rules.status.type == "status" else SelectValue

    def move_to_target(record: Record) -> PropertyPatch:
        log.debug(
            "status_move_planned",
            record_id=record.id,
            target_status=rules.status.target_status,
        )
        return {rules.status.property: value_model(name=rules.status.target_status)}

    return move_to_target
