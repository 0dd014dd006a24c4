"""API usage repository.

Append and aggregate operations on the ``api_usage`` table.
"""

from datetime import datetime
from typing import Any, TypedDict

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cinefeed.database.models import ApiUsage


class UsageSummaryData(TypedDict):
    """Typed dictionary for one aggregated usage row."""

    key: str
    total_calls: int
    last_call: datetime | None


class UsageRepository:
    """Repository for ApiUsage operations.

    Attributes:
        session: Async database session.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize usage repository.

        Args:
            session: SQLAlchemy async session instance.
        """
        self._session = session

    @property
    def session(self) -> AsyncSession:
        """Get the database session."""
        return self._session

    async def add(self, event: ApiUsage) -> ApiUsage:
        """Append an event and flush to obtain its id.

        Args:
            event: Event to persist.

        Returns:
            Persisted event with generated ID.
        """
        self._session.add(event)
        await self._session.flush()
        return event

    async def summarize_by(
        self,
        field_name: str,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> list[UsageSummaryData]:
        """Group events by a column.

        Args:
            field_name: Grouping column ('username' or 'endpoint').
            start_date: Inclusive lower bound on timestamp.
            end_date: Inclusive upper bound on timestamp.

        Returns:
            Rows sorted by total_calls descending.
        """
        column = getattr(ApiUsage, field_name)
        total_calls = func.count(ApiUsage.id).label("total_calls")
        stmt = (
            select(
                column.label("key"),
                total_calls,
                func.max(ApiUsage.timestamp).label("last_call"),
            )
            .where(*self._range_filters(start_date, end_date))
            .group_by(column)
            .order_by(total_calls.desc(), column)
        )
        result = await self._session.execute(stmt)
        return [
            UsageSummaryData(
                key=row.key,
                total_calls=row.total_calls,
                last_call=row.last_call,
            )
            for row in result.all()
        ]

    async def list_events(
        self,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        limit: int | None = None,
    ) -> list[ApiUsage]:
        """List events, most recent first.

        Args:
            start_date: Inclusive lower bound on timestamp.
            end_date: Inclusive upper bound on timestamp.
            limit: Maximum results (None for all).

        Returns:
            List of events ordered by timestamp descending.
        """
        stmt = (
            select(ApiUsage)
            .where(*self._range_filters(start_date, end_date))
            .order_by(ApiUsage.timestamp.desc(), ApiUsage.id.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._session.scalars(stmt)
        return list(result.all())

    @staticmethod
    def _range_filters(
        start_date: datetime | None,
        end_date: datetime | None,
    ) -> list[Any]:
        """Bounds are applied independently."""
        filters = []
        if start_date is not None:
            filters.append(ApiUsage.timestamp >= start_date)
        if end_date is not None:
            filters.append(ApiUsage.timestamp <= end_date)
        return filters
