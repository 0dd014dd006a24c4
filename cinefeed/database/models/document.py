"""Catalog document model.

Every ingested collection (movies0..movies4, upcoming, genres,
theaters, extraimages) lives in one table, partitioned by the
``collection`` column and keyed by the item's natural key.
"""

from typing import Any

from sqlalchemy import Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from cinefeed.database.models.base import Base, JSONType, TimestampMixin


class CatalogDocument(TimestampMixin, Base):
    """One provider item stored as a JSON document.

    Attributes:
        id: Surrogate primary key.
        collection: Logical collection name.
        key_id: Provider id (or IMDb id for extraimages).
        key_title: Title part of the natural key, '' when unused.
        payload: Full item as received (after transformation).
    """

    __tablename__ = "catalog_documents"
    __table_args__ = (
        UniqueConstraint(
            "collection",
            "key_id",
            "key_title",
            name="uq_catalog_documents_natural_key",
        ),
        Index("ix_catalog_documents_collection", "collection"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    collection: Mapped[str] = mapped_column(String(100), nullable=False)
    key_id: Mapped[str] = mapped_column(String(255), nullable=False)
    key_title: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    payload: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"<CatalogDocument(collection='{self.collection}', "
            f"key_id='{self.key_id}', key_title='{self.key_title}')>"
        )
