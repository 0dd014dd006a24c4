"""TMDB API client used for enrichment.

Only two lookups are needed: resolving an IMDb id to a TMDB movie
and listing its images. Calls share a sliding-window limiter and
timeouts or HTTP 429 responses are retried by tenacity.
"""

import asyncio
import time
from collections import deque
from collections.abc import Callable
from types import TracebackType
from typing import Any

import httpx
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from cinefeed.etl.utils.logger import setup_logger
from cinefeed.exceptions import CinefeedError
from cinefeed.settings import TMDBSettings, settings

logger = setup_logger("cinefeed.tmdb")

MAX_ATTEMPTS = 3
MAX_RETRY_WAIT = 10.0


class TMDBClientError(CinefeedError):
    """TMDB answered with an error or could not be queried."""


class TMDBNotFoundError(TMDBClientError):
    """TMDB has no resource at the requested path."""


class TMDBRateLimitError(TMDBClientError):
    """TMDB answered 429.

    Attributes:
        retry_after: Seconds TMDB asked us to wait, when given.
    """

    def __init__(self, message: str, retry_after: float | None = None) -> None:
        self.retry_after = retry_after
        super().__init__(message)


class SlidingWindowLimiter:
    """At most ``limit`` acquisitions per ``period`` seconds, spaced by ``min_delay``."""

    def __init__(
        self,
        limit: int,
        period: float,
        min_delay: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.limit = limit
        self.period = period
        self.min_delay = min_delay
        self._clock = clock
        self._stamps: deque[float] = deque()

    def delay(self) -> float:
        """Seconds to wait before the next acquisition is allowed."""
        now = self._clock()
        while self._stamps and self._stamps[0] <= now - self.period:
            self._stamps.popleft()

        wait = 0.0
        if len(self._stamps) >= self.limit:
            wait = self._stamps[0] + self.period - now
        if self._stamps:
            wait = max(wait, self._stamps[-1] + self.min_delay - now)
        return max(wait, 0.0)

    async def acquire(self) -> None:
        wait = self.delay()
        if wait > 0:
            logger.debug(f"Rate limit: waiting {wait:.2f}s")
            await asyncio.sleep(wait)
        self._stamps.append(self._clock())


def _retry_wait(state: RetryCallState) -> float:
    """Honour Retry-After on 429, exponential backoff otherwise."""
    error = state.outcome.exception() if state.outcome else None
    if isinstance(error, TMDBRateLimitError) and error.retry_after is not None:
        return min(error.retry_after, MAX_RETRY_WAIT)
    return wait_exponential(multiplier=1, min=2, max=MAX_RETRY_WAIT)(state)


class TMDBClient:
    """Async TMDB client; use as an async context manager.

    Example:
        ```python
        async with TMDBClient() as tmdb:
            movie = await tmdb.find_by_imdb_id("tt0078748")
        ```
    """

    def __init__(
        self,
        cfg: TMDBSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.cfg = cfg or settings.tmdb
        self.limiter = SlidingWindowLimiter(
            self.cfg.requests_per_period,
            self.cfg.period_seconds,
            self.cfg.min_request_delay,
        )
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "TMDBClient":
        self._client = httpx.AsyncClient(
            base_url=self.cfg.base_url,
            params={"api_key": self.cfg.api_key, "language": self.cfg.language},
            timeout=settings.etl.fetch_timeout,
            headers={"User-Agent": settings.etl.user_agent},
            transport=self._transport,
        )
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def find_by_imdb_id(self, imdb_id: str) -> dict[str, Any] | None:
        """First TMDB movie matching an IMDb id, or None.

        Args:
            imdb_id: IMDb identifier (e.g. 'tt0078748').
        """
        data = await self._get(f"/find/{imdb_id}", external_source="imdb_id")
        movies = data.get("movie_results") or []
        return movies[0] if movies else None

    async def get_images(self, tmdb_id: int) -> dict[str, Any]:
        """Images payload of a movie ('backdrops' and 'posters' lists)."""
        return await self._get(f"/movie/{tmdb_id}/images", include_image_language="en,null")

    @retry(
        retry=retry_if_exception_type((httpx.TimeoutException, TMDBRateLimitError)),
        stop=stop_after_attempt(MAX_ATTEMPTS),
        wait=_retry_wait,
        reraise=True,
    )
    async def _get(self, path: str, **params: Any) -> dict[str, Any]:
        if self._client is None:
            raise TMDBClientError("Client not initialized. Use async context manager.")

        await self.limiter.acquire()
        try:
            response = await self._client.get(path, params=params)
        except httpx.TimeoutException:
            logger.warning(f"TMDB timeout: {path}")
            raise
        return self._handle_response(response, path)

    @staticmethod
    def _handle_response(response: httpx.Response, path: str) -> dict[str, Any]:
        """Decode a 200 response or raise the matching TMDBClientError."""
        status = response.status_code
        if status == 200:
            try:
                return response.json()
            except ValueError as e:
                logger.error(f"TMDB returned a non-JSON body for {path}")
                raise TMDBClientError(f"Malformed TMDB response: {path}") from e
        if status == 404:
            raise TMDBNotFoundError(f"Not found: {path}")
        if status == 429:
            header = response.headers.get("Retry-After")
            retry_after = float(header) if header and header.isdigit() else None
            logger.warning(f"TMDB rate limited on {path}, retry after {header or '?'}s")
            raise TMDBRateLimitError(f"Rate limited: {path}", retry_after)

        message = f"TMDB API error {status}: {path}"
        logger.error(message)
        raise TMDBClientError(message)
