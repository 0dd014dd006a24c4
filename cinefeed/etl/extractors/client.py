"""Timed HTTP fetch client for provider requests.

Performs text and binary GET requests with a fixed timeout,
records latency and classifies every failure into a single
FetchError. Retry policy belongs to callers.
"""

import time
from dataclasses import dataclass
from types import TracebackType

import httpx
from prometheus_client import Histogram

from cinefeed.exceptions import FetchError, FetchErrorKind
from cinefeed.etl.utils.logger import setup_logger
from cinefeed.settings import settings

logger = setup_logger("cinefeed.fetch")

FETCH_DURATION = Histogram(
    "cinefeed_fetch_duration_seconds",
    "Provider request duration in seconds",
    ["outcome"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

_REQUEST_ERRORS = (httpx.InvalidURL, httpx.UnsupportedProtocol, httpx.LocalProtocolError)
_MAX_BODY_LOG = 500


@dataclass
class FetchResponse:
    """Successful response with its measured latency."""

    url: str
    status_code: int
    content: bytes
    text: str
    elapsed_ms: float


class HttpFetcher:
    """Async HTTP client with a fixed timeout and failure classification.

    Use as an async context manager, or pass an existing client.

    Example:
        ```python
        async with HttpFetcher() as fetcher:
            body = await fetcher.fetch(url)
        ```
    """

    def __init__(
        self,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize fetcher.

        Args:
            timeout: Request timeout in seconds (FETCH_TIMEOUT by default).
            transport: Optional httpx transport (used by tests).
        """
        self._timeout = timeout if timeout is not None else settings.etl.fetch_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self.last_latency_ms: float | None = None

    # -------------------------------------------------------------------------
    # Context Manager
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> "HttpFetcher":
        """Enter context and create HTTP client."""
        self._client = httpx.AsyncClient(
            timeout=self._timeout,
            headers={"User-Agent": settings.etl.user_agent},
            follow_redirects=True,
            transport=self._transport,
        )
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        """Exit context and close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def fetch(self, url: str) -> str:
        """GET a URL and return its body as text.

        Raises:
            FetchError: On timeout, remote error, missing response or
                malformed request.
        """
        response = await self.get(url)
        return response.text

    async def fetch_binary(self, url: str) -> bytes:
        """GET a URL and return its raw body.

        Raises:
            FetchError: Same classification as fetch().
        """
        response = await self.get(url)
        return response.content

    async def get(self, url: str) -> FetchResponse:
        """Execute a GET request and time it.

        Args:
            url: Absolute URL.

        Returns:
            FetchResponse with body and latency.

        Raises:
            FetchError: Tagged with its failure shape.
        """
        if self._client is None:
            raise FetchError(
                FetchErrorKind.REQUEST_ERROR,
                url,
                "Client not initialized. Use async context manager.",
            )

        logger.debug(f"GET {url}")
        start = time.perf_counter()

        try:
            response = await self._client.get(url)
        except httpx.TimeoutException as e:
            raise self._failure(FetchErrorKind.TIMEOUT, url, start, str(e) or "timed out") from e
        except _REQUEST_ERRORS as e:
            raise self._failure(FetchErrorKind.REQUEST_ERROR, url, start, str(e)) from e
        except httpx.TransportError as e:
            raise self._failure(FetchErrorKind.NO_RESPONSE, url, start, str(e)) from e

        elapsed_ms = self._elapsed_ms(start)
        self.last_latency_ms = elapsed_ms

        if not response.is_success:
            FETCH_DURATION.labels(outcome="remote_error").observe(elapsed_ms / 1000)
            logger.error(
                f"Remote error {response.status_code} from {url} "
                f"after {elapsed_ms:.0f} ms: {response.text[:_MAX_BODY_LOG]}"
            )
            raise FetchError(
                FetchErrorKind.REMOTE_ERROR,
                url,
                response.reason_phrase or "error response",
                status_code=response.status_code,
                body=response.text,
            )

        FETCH_DURATION.labels(outcome="success").observe(elapsed_ms / 1000)
        logger.info(f"Fetched {url} ({response.status_code}) in {elapsed_ms:.0f} ms")

        return FetchResponse(
            url=url,
            status_code=response.status_code,
            content=response.content,
            text=response.text,
            elapsed_ms=elapsed_ms,
        )

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _failure(
        self,
        kind: FetchErrorKind,
        url: str,
        start: float,
        cause: str,
    ) -> FetchError:
        """Log a failed request and build its FetchError."""
        elapsed_ms = self._elapsed_ms(start)
        self.last_latency_ms = elapsed_ms
        FETCH_DURATION.labels(outcome=kind.value).observe(elapsed_ms / 1000)
        logger.error(f"{kind.value} for {url} after {elapsed_ms:.0f} ms: {cause}")
        return FetchError(kind, url, cause)

    @staticmethod
    def _elapsed_ms(start: float) -> float:
        return (time.perf_counter() - start) * 1000
