"""Exception hierarchy shared by the ingestion pipeline and analytics."""

from enum import Enum
from typing import Any


class CinefeedError(Exception):
    """Base exception for cinefeed errors."""

    pass


class FetchErrorKind(str, Enum):
    """Failure shapes reported by the fetch client."""

    TIMEOUT = "timeout"
    REMOTE_ERROR = "remote_error"
    NO_RESPONSE = "no_response"
    REQUEST_ERROR = "request_error"


class FetchError(CinefeedError):
    """Raised when a provider request fails.

    Attributes:
        kind: Failure shape.
        url: Requested URL.
        status_code: HTTP status for remote errors, None otherwise.
        body: Response body for remote errors.
        cause: Message of the underlying exception.
    """

    def __init__(
        self,
        kind: FetchErrorKind,
        url: str,
        cause: str,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        self.kind = kind
        self.url = url
        self.cause = cause
        self.status_code = status_code
        self.body = body
        status = f" {status_code}" if status_code is not None else ""
        super().__init__(f"{kind.value}{status} for {url}: {cause}")


class ParseError(CinefeedError):
    """Raised when a provider payload cannot be decoded."""

    def __init__(self, message: str, url: str | None = None) -> None:
        self.url = url
        super().__init__(message)


class UsageValidationError(CinefeedError):
    """Raised when a usage event lacks required fields."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(f"Missing required fields: {', '.join(missing)}")


class PersistenceError(CinefeedError):
    """Raised when one or more store operations are rejected.

    Attributes:
        collection: Target collection.
        results: Per-item results when raised from a batch upsert.
    """

    def __init__(
        self,
        message: str,
        collection: str | None = None,
        results: list[Any] | None = None,
    ) -> None:
        self.collection = collection
        self.results = results or []
        super().__init__(message)

    @property
    def failed(self) -> list[Any]:
        """Results of the items that were not persisted."""
        return [r for r in self.results if not r.success]
