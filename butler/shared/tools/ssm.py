"""
SSM Parameter Store Tools

Credential and configuration retrieval. Every path is relative to the
configured prefix (``/NotionButler/`` by default). Any failure here is a
ConfigError and aborts the run before a query is issued.
"""

import json
from typing import Any, TypeVar

import boto3
from botocore.exceptions import ClientError
from pydantic import BaseModel, ValidationError
import structlog

from butler.shared.config import Settings, get_settings
from butler.shared.exceptions import ConfigError

log = structlog.get_logger()

M = TypeVar("M", bound=BaseModel)


class ParameterStore:
    """
    Reads secrets and JSON configs from SSM Parameter Store.

    Construct one per invocation and pass it to whatever needs it.
    """

    def __init__(self, client: Any = None, *, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self._client = client or boto3.client("ssm", **self.settings.ssm_config)

    def full_path(self, path: str) -> str:
        """Prefix a relative parameter path."""
        prefix = self.settings.ssm_prefix.rstrip("/")
        return f"{prefix}/{path.lstrip('/')}"

    def _get_value(self, path: str, *, decrypt: bool) -> str:
        name = self.full_path(path)

        log.debug("fetching_parameter", parameter=name)

        try:
            response = self._client.get_parameter(Name=name, WithDecryption=decrypt)
        except ClientError as e:
            log.error(
                "parameter_fetch_failed",
                parameter=name,
                error_code=e.response.get("Error", {}).get("Code"),
                error=str(e),
            )
            raise ConfigError(name, str(e)) from e

        value = response.get("Parameter", {}).get("Value")
        if not value:
            log.error("parameter_empty", parameter=name)
            raise ConfigError(name, "parameter is missing or empty")

        return value

    def get_secret(self, path: str) -> str:
        """
        Get a decrypted string parameter.

        Args:
            path: Path relative to the prefix (e.g. "NotionToken")

        Returns:
            Parameter value

        Raises:
            ConfigError: If the parameter cannot be read or is empty
        """
        return self._get_value(path, decrypt=True)

    def get_value(self, path: str) -> str:
        """Get a plain string parameter (e.g. a database id)."""
        return self._get_value(path, decrypt=False)

    def get_config(self, path: str, model: type[M]) -> M:
        """
        Get a JSON parameter parsed into a pydantic model.

        Args:
            path: Path relative to the prefix
            model: Model the JSON document must satisfy

        Returns:
            Parsed model instance

        Raises:
            ConfigError: If the parameter is missing, not JSON, or invalid
        """
        raw = self._get_value(path, decrypt=True)
        name = self.full_path(path)

        try:
            return model.model_validate(json.loads(raw))
        except json.JSONDecodeError as e:
            log.error("parameter_not_json", parameter=name, error=str(e))
            raise ConfigError(name, f"invalid JSON: {e}") from e
        except ValidationError as e:
            log.error(
                "parameter_invalid",
                parameter=name,
                errors=e.error_count(),
            )
            raise ConfigError(name, f"invalid configuration: {e}") from e
