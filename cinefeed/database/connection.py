"""Database connection management with SQLAlchemy 2.0 (async).

Every gateway call opens a short-lived connection and releases it
when the call completes. Connections are not pooled across calls
(NullPool), so no connection is held during the day-walk delays.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncConnection,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from cinefeed.database.models import Base
from cinefeed.settings import settings


class DatabaseConnection:
    """Owns the async engine and hands out per-call connections.

    Attributes:
        url: Async database URL.

    Example:
        ```python
        db = DatabaseConnection()
        async with db.session() as session:
            await session.execute(text("SELECT 1"))
        ```
    """

    def __init__(self, url: str | None = None, echo: bool | None = None) -> None:
        """Create the engine and session factory.

        Args:
            url: Async database URL (settings.database.async_url by default).
            echo: Log SQL statements (DEBUG setting by default).
        """
        self.url = url or settings.database.async_url
        self._engine = create_async_engine(
            self.url,
            poolclass=NullPool,
            echo=settings.debug if echo is None else echo,
        )
        self._session_factory = async_sessionmaker(
            bind=self._engine,
            autoflush=False,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide a transactional session scope.

        Commits on success, rolls back on exception, and always
        closes the session.

        Yields:
            SQLAlchemy AsyncSession instance.
        """
        session = self._session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    @asynccontextmanager
    async def connect(self) -> AsyncGenerator[AsyncConnection, None]:
        """Provide a raw connection; callers manage their own transactions.

        Yields:
            SQLAlchemy AsyncConnection, closed on exit.
        """
        async with self._engine.connect() as conn:
            yield conn

    async def create_all(self) -> None:
        """Create all tables that do not exist yet."""
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def check_connection(self) -> bool:
        """Test database connectivity with a simple query.

        Returns:
            True if connection successful, False otherwise.
        """
        try:
            async with self.session() as session:
                await session.execute(text("SELECT 1"))
            return True
        except Exception:  # noqa: BLE001
            return False

    async def dispose(self) -> None:
        """Dispose the engine and release resources."""
        await self._engine.dispose()

    @property
    def engine(self) -> AsyncEngine:
        """Get the underlying async engine."""
        return self._engine


# =============================================================================
# MODULE-LEVEL CONVENIENCE FUNCTIONS
# =============================================================================

_db: DatabaseConnection | None = None


def get_database() -> DatabaseConnection:
    """Get the shared DatabaseConnection instance (lazy initialization).

    Returns:
        DatabaseConnection singleton instance.
    """
    global _db  # noqa: PLW0603
    if _db is None:
        _db = DatabaseConnection()
    return _db


async def close_database() -> None:
    """Dispose the shared connection, if any."""
    global _db  # noqa: PLW0603
    if _db is not None:
        await _db.dispose()
        _db = None
