"""API usage logging and aggregation service.

Records one event per API call and answers per-user and
per-endpoint usage questions over an optional time range.
"""

from datetime import datetime
from typing import Any, TypedDict

from cinefeed.database.connection import DatabaseConnection, get_database
from cinefeed.database.models import ApiUsage
from cinefeed.database.repositories import UsageRepository
from cinefeed.etl.utils.logger import setup_logger
from cinefeed.exceptions import UsageValidationError

logger = setup_logger("cinefeed.analytics.usage")

REQUIRED_FIELDS = ("endpoint", "username", "timestamp")


class UserStats(TypedDict):
    """Calls made by one username."""

    username: str
    total_calls: int
    last_call: datetime | None


class EndpointStats(TypedDict):
    """Calls made to one endpoint."""

    endpoint: str
    total_calls: int
    last_call: datetime | None


class UsageService:
    """Append-only usage log with aggregate queries.

    Every operation runs in its own session.

    Example:
        ```python
        service = UsageService()
        await service.log_usage(endpoint="/movies", username="alice",
                                timestamp=datetime.now(timezone.utc))
        stats = await service.stats_by_user()
        ```
    """

    def __init__(self, db: DatabaseConnection | None = None) -> None:
        self._db = db or get_database()

    async def log_usage(
        self,
        endpoint: str | None = None,
        username: str | None = None,
        user_id: str | None = None,
        status_code: int | None = None,
        query_params: dict[str, Any] | None = None,
        method: str | None = None,
        timestamp: datetime | None = None,
    ) -> int:
        """Append one usage event.

        Args:
            endpoint: Endpoint path called.
            username: Acting username.
            user_id: Acting user id.
            status_code: HTTP status (200 by default).
            query_params: Request query parameters ({} by default).
            method: HTTP method ('GET' by default).
            timestamp: Request time.

        Returns:
            Id of the stored event.

        Raises:
            UsageValidationError: If endpoint, username or timestamp is
                missing. Nothing is written.
        """
        values = {"endpoint": endpoint, "username": username, "timestamp": timestamp}
        missing = [name for name in REQUIRED_FIELDS if not values[name]]
        if missing:
            logger.error(f"Usage event rejected, missing: {missing}")
            raise UsageValidationError(missing)

        event = ApiUsage(
            endpoint=endpoint,
            username=username,
            user_id=user_id,
            status_code=status_code or 200,
            method=method or "GET",
            query_params=query_params or {},
            timestamp=timestamp,
        )

        async with self._db.session() as session:
            await UsageRepository(session).add(event)
            event_id = event.id

        logger.debug(f"Usage logged: {method or 'GET'} {endpoint} by {username}")
        return event_id

    async def stats_by_user(
        self,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> list[UserStats]:
        """Total calls and last call per username, busiest first."""
        async with self._db.session() as session:
            rows = await UsageRepository(session).summarize_by("username", start_date, end_date)
        return [
            UserStats(username=row["key"], total_calls=row["total_calls"], last_call=row["last_call"])
            for row in rows
        ]

    async def stats_by_endpoint(
        self,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> list[EndpointStats]:
        """Total calls and last call per endpoint, busiest first."""
        async with self._db.session() as session:
            rows = await UsageRepository(session).summarize_by("endpoint", start_date, end_date)
        return [
            EndpointStats(endpoint=row["key"], total_calls=row["total_calls"], last_call=row["last_call"])
            for row in rows
        ]

    async def recent_events(
        self,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Events in range, most recent first.

        Args:
            start_date: Inclusive lower bound.
            end_date: Inclusive upper bound.
            limit: Maximum events (all by default).

        Returns:
            Events as plain dicts.
        """
        async with self._db.session() as session:
            events = await UsageRepository(session).list_events(start_date, end_date, limit)
            return [event.to_dict() for event in events]
