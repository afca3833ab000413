"""
Notion Record Store

Gateway between the transition engine and a Notion database.

The engine depends only on the RecordStore protocol; NotionRecordStore
implements it over ``notion-client``. Notion API errors are mapped to
StoreErrorKind so callers can tell not-found, permission and rate-limit
conditions apart.

Only the first page of a query is fetched. RecordPage.has_more reports
whether Notion holds further results.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

import httpx
from notion_client import Client
from notion_client.errors import HTTPResponseError, RequestTimeoutError
import structlog

from butler.shared.config import Settings, get_settings
from butler.shared.exceptions import QueryError, RecordStoreError, StoreErrorKind, UpdateError
from butler.shared.filters import CompoundFilter
from butler.shared.models.properties import PropertyPatch, Record, parse_page, patch_to_notion
from butler.shared.tools.ssm import ParameterStore

log = structlog.get_logger()

DEFAULT_NOTION_VERSION = "2022-06-28"

# Notion error code -> store error kind
ERROR_CODE_KINDS: dict[str, StoreErrorKind] = {
    "object_not_found": StoreErrorKind.NOT_FOUND,
    "unauthorized": StoreErrorKind.PERMISSION,
    "restricted_resource": StoreErrorKind.PERMISSION,
    "rate_limited": StoreErrorKind.RATE_LIMITED,
    "validation_error": StoreErrorKind.INVALID,
    "invalid_request": StoreErrorKind.INVALID,
    "invalid_json": StoreErrorKind.INVALID,
}

# HTTP status -> store error kind, when the body carries no known code
STATUS_KINDS: dict[int, StoreErrorKind] = {
    400: StoreErrorKind.INVALID,
    401: StoreErrorKind.PERMISSION,
    403: StoreErrorKind.PERMISSION,
    404: StoreErrorKind.NOT_FOUND,
    429: StoreErrorKind.RATE_LIMITED,
}


@dataclass(frozen=True)
class RecordPage:
    """One page of query results."""

    records: tuple[Record, ...] = ()
    has_more: bool = False
    next_cursor: str | None = None

    @property
    def count(self) -> int:
        return len(self.records)


@runtime_checkable
class RecordStore(Protocol):
    """Record store gateway consumed by the transition engine."""

    def query(self, compound_filter: CompoundFilter) -> RecordPage:
        """Return the first page of records matching the filter."""
        ...

    def update(self, record_id: str, patch: PropertyPatch) -> Record:
        """Apply a property patch and return the updated record."""
        ...


def classify_error(code: Any = None, status: int | None = None) -> StoreErrorKind:
    """
    Map a Notion error code / HTTP status to a StoreErrorKind.

    Args:
        code: Notion error code (string or APIErrorCode)
        status: HTTP status of the failed response

    Returns:
        StoreErrorKind (OTHER when neither is recognised)
    """
    code_value = getattr(code, "value", code)
    if code_value in ERROR_CODE_KINDS:
        return ERROR_CODE_KINDS[code_value]
    if status in STATUS_KINDS:
        return STATUS_KINDS[status]
    return StoreErrorKind.OTHER


def _error_kind(error: Exception) -> StoreErrorKind:
    if isinstance(error, RequestTimeoutError):
        return StoreErrorKind.TIMEOUT
    return classify_error(getattr(error, "code", None), getattr(error, "status", None))


def get_notion_client(
    parameters: ParameterStore,
    *,
    settings: Settings | None = None,
    auth: str | None = None,
) -> Client:
    """
    Create an authenticated Notion client.

    Args:
        parameters: Parameter store holding the integration token
        settings: Settings (default: cached settings)
        auth: Explicit token; skips the parameter store lookup

    Returns:
        notion_client.Client

    Raises:
        ConfigError: If the token parameter is missing or empty
    """
    settings = settings or get_settings()
    token = auth or parameters.get_secret(settings.notion_token_parameter)
    return Client(
        auth=token,
        notion_version=settings.notion_version or DEFAULT_NOTION_VERSION,
    )


@dataclass
class NotionRecordStore:
    """RecordStore over one Notion database."""

    client: Any
    database_id: str
    page_size: int = 100
    _log: Any = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self._log = log.bind(database_id=self.database_id)

    def query(self, compound_filter: CompoundFilter) -> RecordPage:
        """
        Query the database with a compiled filter.

        Raises:
            QueryError: If Notion rejects or cannot serve the query
        """
        body = {"filter": compound_filter.to_notion(), "page_size": self.page_size}

        self._log.debug("querying_database", filter=body["filter"])

        try:
            response = self.client.request(
                path=f"databases/{self.database_id}/query",
                method="POST",
                body=body,
            )
        except (HTTPResponseError, RequestTimeoutError) as e:
            kind = _error_kind(e)
            self._log.error("database_query_failed", kind=kind.value, error=str(e))
            raise QueryError(str(e), kind) from e
        except httpx.HTTPError as e:
            self._log.error("database_query_failed", kind=StoreErrorKind.OTHER.value, error=str(e))
            raise QueryError(str(e), StoreErrorKind.OTHER) from e

        records: list[Record] = []
        for page in response.get("results", []):
            try:
                records.append(parse_page(page))
            except ValueError as e:
                raise QueryError(str(e), StoreErrorKind.INVALID) from e

        result = RecordPage(
            records=tuple(records),
            has_more=bool(response.get("has_more")),
            next_cursor=response.get("next_cursor"),
        )

        self._log.info("records_queried", count=result.count, has_more=result.has_more)

        return result

    def update(self, record_id: str, patch: PropertyPatch) -> Record:
        """
        Apply a property patch to a page.

        Raises:
            UpdateError: If Notion rejects the update
        """
        try:
            response = self.client.pages.update(
                page_id=record_id,
                properties=patch_to_notion(patch),
            )
        except (HTTPResponseError, RequestTimeoutError) as e:
            kind = _error_kind(e)
            self._log.error(
                "page_update_failed",
                record_id=record_id,
                kind=kind.value,
                error=str(e),
            )
            raise UpdateError(record_id, str(e), kind) from e
        except httpx.HTTPError as e:
            self._log.error(
                "page_update_failed",
                record_id=record_id,
                kind=StoreErrorKind.OTHER.value,
                error=str(e),
            )
            raise UpdateError(record_id, str(e), StoreErrorKind.OTHER) from e

        self._log.debug("page_updated", record_id=record_id, properties=list(patch))

        try:
            return parse_page(response)
        except ValueError as e:
            raise UpdateError(record_id, str(e), StoreErrorKind.INVALID) from e

    def create(self, properties: dict[str, Any]) -> Record:
        """
        Create a page in the database.

        Args:
            properties: Notion ``properties`` payload

        Raises:
            RecordStoreError: If Notion rejects the page
        """
        try:
            response = self.client.pages.create(
                parent={"database_id": self.database_id},
                properties=properties,
            )
        except (HTTPResponseError, RequestTimeoutError) as e:
            kind = _error_kind(e)
            self._log.error("page_create_failed", kind=kind.value, error=str(e))
            raise RecordStoreError("create", str(e), kind) from e
        except httpx.HTTPError as e:
            self._log.error("page_create_failed", kind=StoreErrorKind.OTHER.value, error=str(e))
            raise RecordStoreError("create", str(e), StoreErrorKind.OTHER) from e

        try:
            record = parse_page(response)
        except ValueError as e:
            raise RecordStoreError("create", str(e), StoreErrorKind.INVALID) from e

        self._log.info("page_created", record_id=record.id)

        return record
