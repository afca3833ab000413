"""
Pytest Configuration and Shared Fixtures

Provides moto AWS mocking, settings, sample records and test utilities.
"""

import json
import os
from datetime import date, datetime, timezone
from typing import Any

import boto3
import pytest
from moto import mock_aws

# Set test environment before importing application modules
os.environ["BUTLER_AWS_REGION"] = "eu-central-1"
os.environ["BUTLER_SSM_PREFIX"] = "/NotionButler/"
os.environ["BUTLER_NOTIFICATION_FUNCTION_NAME"] = "TelegramSendNotification"
os.environ["AWS_DEFAULT_REGION"] = "eu-central-1"
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"

from butler.shared.config import Settings, get_settings  # noqa: E402
from butler.shared.models.properties import Record  # noqa: E402
from tests.mocks.lambda_context import FakeLambdaContext  # noqa: E402
from tests.utils.notion_pages import (  # noqa: E402
    MONTHLY_LABEL,
    YEARLY_LABEL,
    subscription_record,
    task_record,
)

SUBSCRIPTIONS_DATABASE_ID = "subs-db-0001"
TASKS_DATABASE_ID = "tasks-db-0001"


# --- Settings Fixtures ---


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Reload settings from the environment for every test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Settings built from the test environment."""
    return get_settings()


# --- Time Fixtures ---


@pytest.fixture
def today() -> date:
    """Fixed processing day for deterministic tests."""
    return date(2025, 1, 15)


@pytest.fixture
def frozen_now() -> datetime:
    """Fixed cut-off moment for status moves."""
    return datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


# --- AWS Mocking Fixtures ---


@pytest.fixture
def aws_credentials():
    """Mock AWS credentials for moto."""
    return {
        "aws_access_key_id": "testing",
        "aws_secret_access_key": "testing",
        "region_name": "eu-central-1",
    }


@pytest.fixture
def mock_ssm(aws_credentials):
    """
    Create a mocked SSM Parameter Store.

    Seeds the Notion token and both database ids below /NotionButler/.
    """
    with mock_aws():
        ssm = boto3.client("ssm", **aws_credentials)
        ssm.put_parameter(
            Name="/NotionButler/NotionToken",
            Value="secret_test_token",
            Type="SecureString",
        )
        ssm.put_parameter(
            Name="/NotionButler/Personal/SubscriptionsDatabase",
            Value=SUBSCRIPTIONS_DATABASE_ID,
            Type="String",
        )
        ssm.put_parameter(
            Name="/NotionButler/Personal/TasksDatabase",
            Value=TASKS_DATABASE_ID,
            Type="String",
        )
        yield ssm


@pytest.fixture
def move_pages_config() -> dict[str, Any]:
    """Move-pages configuration as stored in SSM."""
    return {
        "databaseId": TASKS_DATABASE_ID,
        "config": {
            "date": {"property": "Due"},
            "status": {
                "property": "Status",
                "watchedStatuses": ["Doing", "Blocked"],
                "targetStatus": "Done",
            },
        },
    }


@pytest.fixture
def mock_ssm_with_move_config(mock_ssm, move_pages_config: dict[str, Any]):
    """Mocked SSM with the default move-pages configuration."""
    mock_ssm.put_parameter(
        Name="/NotionButler/Personal/MovePages",
        Value=json.dumps(move_pages_config),
        Type="SecureString",
    )
    return mock_ssm


# --- Record Fixtures ---


@pytest.fixture
def due_subscriptions(today: date) -> list[Record]:
    """Two subscriptions due today (10 PLN monthly, 20 PLN yearly)."""
    return [
        subscription_record("sub-a", "Spotify", today, 10, MONTHLY_LABEL),
        subscription_record("sub-b", "Domain", today, 20, YEARLY_LABEL),
    ]


@pytest.fixture
def not_due_subscription(today: date) -> Record:
    """Subscription due tomorrow."""
    return subscription_record(
        "sub-later", "Netflix", date(today.year, today.month, today.day + 1), 45, MONTHLY_LABEL
    )


@pytest.fixture
def overdue_tasks() -> list[Record]:
    """Tasks for the status move scenarios."""
    return [
        task_record("task-1", "Write report", "Doing", date(2025, 1, 10)),
        task_record("task-2", "Pay invoice", "Blocked", date(2025, 1, 15)),
        task_record("task-3", "Plan trip", "Doing", date(2025, 2, 1)),
        task_record("task-4", "Old chore", "Done", date(2025, 1, 1)),
        task_record("task-5", "Idea", "Backlog", date(2025, 1, 2)),
    ]


# --- Lambda Context Fixtures ---


@pytest.fixture
def lambda_context() -> FakeLambdaContext:
    """Lambda context with plenty of time left."""
    return FakeLambdaContext()
