"""SQLAlchemy ORM models for the cinefeed database.

Tables:
    - catalog_documents: Ingested provider items, one row per natural key
    - api_usage: Append-only API usage events
"""

from cinefeed.database.models.base import Base, JSONType, TimestampMixin, utcnow
from cinefeed.database.models.document import CatalogDocument
from cinefeed.database.models.usage import ApiUsage

__all__ = [
    "ApiUsage",
    "Base",
    "CatalogDocument",
    "JSONType",
    "TimestampMixin",
    "utcnow",
]
