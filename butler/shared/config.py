"""
Configuration Management

Pydantic-settings based configuration for Notion Butler.
All settings can be overridden via environment variables.

Secrets (Notion token, database ids, flow configs) are not settings:
they are read from SSM Parameter Store at run time, below ``ssm_prefix``.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment variables are prefixed with BUTLER_ and are case-insensitive.
    Example: BUTLER_CURRENCY=EUR
    """

    model_config = SettingsConfigDict(
        env_prefix="BUTLER_",
        env_file=[".env.local", ".env"],  # Try .env.local first
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # AWS Configuration
    aws_region: str = Field(
        default="eu-central-1",
        description="AWS region",
    )
    ssm_endpoint_url: str | None = Field(
        default=None,
        description="SSM endpoint URL (for local development)",
    )
    lambda_endpoint_url: str | None = Field(
        default=None,
        description="Lambda endpoint URL (for local development)",
    )

    # Parameter Store layout
    ssm_prefix: str = Field(
        default="/NotionButler/",
        description="Prefix prepended to every parameter path",
    )
    notion_token_parameter: str = Field(
        default="NotionToken",
        description="Parameter holding the Notion integration token",
    )
    subscriptions_database_parameter: str = Field(
        default="Personal/SubscriptionsDatabase",
        description="Parameter holding the subscriptions database id",
    )
    tasks_database_parameter: str = Field(
        default="Personal/TasksDatabase",
        description="Parameter holding the tasks database id",
    )
    move_pages_config_parameter: str = Field(
        default="Personal/MovePages",
        description="Parameter holding the JSON config of the move-pages flow",
    )

    # Notion Configuration
    notion_version: str | None = Field(
        default=None,
        description="Notion-Version header override",
    )

    # Subscriptions flow
    subscription_name_property: str = Field(default="Nazwa")
    subscription_next_payment_property: str = Field(default="Nast. płatność")
    subscription_amount_property: str = Field(default="Cena")
    subscription_cadence_property: str = Field(default="Częstość")
    cadence_labels: dict[str, Literal["monthly", "yearly"]] = Field(
        default_factory=lambda: {"Miesięczny": "monthly", "Roczny": "yearly"},
        description="Select option label to cadence mapping",
    )
    currency: str = Field(
        default="PLN",
        description="Currency shown in the payment summary",
    )
    timezone: str = Field(
        default="Europe/Warsaw",
        description="IANA time zone used to decide which day is today",
    )

    # Notifications
    notification_function_name: str = Field(
        default="TelegramSendNotification",
        description="Lambda invoked asynchronously with the batch summary",
    )

    # Tasks flows
    task_title_property: str = Field(default="Name")
    task_status_property: str = Field(default="Status")
    task_description_property: str = Field(default="Description")
    task_created_property: str = Field(default="Created time")

    # Runtime
    min_remaining_time_ms: int = Field(
        default=5000,
        description="Stop scheduling records when less Lambda time remains",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )

    @property
    def ssm_config(self) -> dict:
        """SSM client configuration."""
        config = {"region_name": self.aws_region}
        if self.ssm_endpoint_url:
            config["endpoint_url"] = self.ssm_endpoint_url
        return config

    @property
    def lambda_config(self) -> dict:
        """Lambda client configuration."""
        config = {"region_name": self.aws_region}
        if self.lambda_endpoint_url:
            config["endpoint_url"] = self.lambda_endpoint_url
        return config


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses lru_cache to ensure settings are loaded only once.
    Call get_settings.cache_clear() in tests after changing the environment.
    """
    return Settings()
