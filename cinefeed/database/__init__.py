"""Database package for cinefeed.

Provides connection management, ORM models, and repositories.

Usage:
    from cinefeed.database import get_database, DocumentRepository

    repo = DocumentRepository(get_database())
    movies = await repo.find("movies0")
"""

from cinefeed.database.connection import (
    DatabaseConnection,
    close_database,
    get_database,
)
from cinefeed.database.models import ApiUsage, Base, CatalogDocument
from cinefeed.database.repositories import (
    DocumentRepository,
    UpsertResult,
    UsageRepository,
)

__all__ = [
    # Connection
    "DatabaseConnection",
    "get_database",
    "close_database",
    # Models
    "Base",
    "CatalogDocument",
    "ApiUsage",
    # Repositories
    "DocumentRepository",
    "UpsertResult",
    "UsageRepository",
]
