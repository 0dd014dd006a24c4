"""Catalog document repository.

Persistence contract of the ingestion pipeline: natural-key
upserts, full-collection replacement and plain bulk inserts
on top of the ``catalog_documents`` table.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

from sqlalchemy import delete, func, insert, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection

from cinefeed.database.connection import DatabaseConnection, get_database
from cinefeed.database.models import CatalogDocument, utcnow
from cinefeed.etl.utils.logger import setup_logger
from cinefeed.exceptions import PersistenceError
from cinefeed.settings import settings

NaturalKey = tuple[str, str]

_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}

# Criteria fields that map onto natural-key columns.
_CRITERIA_COLUMNS = {
    "id": CatalogDocument.key_id,
    "imdbid": CatalogDocument.key_id,
    "title": CatalogDocument.key_title,
}


@dataclass
class UpsertResult:
    """Outcome of one item in a batch upsert.

    Attributes:
        key: Natural key of the item, None if it could not be derived.
        success: True if the store accepted the write.
        error: Failure description.
    """

    key: NaturalKey | None
    success: bool
    error: str | None = None


class DocumentRepository:
    """Persistence gateway for ingested collections.

    Each public call acquires its own connection and releases it
    on return, whatever the outcome.

    Attributes:
        imdb_keyed: Collections keyed on ``imdbid`` instead of (id, title).
    """

    def __init__(
        self,
        db: DatabaseConnection | None = None,
        imdb_keyed: Iterable[str] | None = None,
    ) -> None:
        """Initialize repository.

        Args:
            db: Database connection (shared instance by default).
            imdb_keyed: Collections keyed on IMDb id alone.
        """
        self._db = db or get_database()
        if imdb_keyed is None:
            imdb_keyed = {settings.showtimes.extra_images_collection}
        self.imdb_keyed = set(imdb_keyed)
        self._logger = setup_logger("cinefeed.repository.documents")

    # =========================================================================
    # Natural keys
    # =========================================================================

    def natural_key(self, item: dict[str, Any], collection: str) -> NaturalKey:
        """Derive the natural key of an item.

        Args:
            item: Document to store.
            collection: Target collection.

        Returns:
            (key_id, key_title) tuple.

        Raises:
            KeyError: If a key field is missing or empty.
        """
        if collection in self.imdb_keyed:
            imdb_id = item.get("imdbid")
            if not imdb_id:
                raise KeyError("imdbid")
            return str(imdb_id), ""

        for field_name in ("id", "title"):
            if item.get(field_name) in (None, ""):
                raise KeyError(field_name)
        return str(item["id"]), str(item["title"])

    @staticmethod
    def reference_key(item: dict[str, Any], position: int) -> NaturalKey:
        """Key for reference records.

        The provider id (or a generated one) plus the record's position in
        its list, so records repeating an id never collide.
        """
        provider_id = item.get("id", item.get("ID"))
        if provider_id in (None, ""):
            provider_id = uuid4().hex
        return str(provider_id), f"#{position}"

    # =========================================================================
    # Public API
    # =========================================================================

    async def replace_all(self, criteria: dict[str, Any], collection: str) -> int:
        """Delete every document of a collection matching criteria.

        Args:
            criteria: Natural-key filters ({} deletes the whole collection).
            collection: Target collection.

        Returns:
            Number of deleted documents.

        Raises:
            ValueError: If criteria uses a non-key field.
            PersistenceError: If the store rejects the delete.
        """
        stmt = delete(CatalogDocument).where(
            CatalogDocument.collection == collection,
            *self._criteria_filters(criteria),
        )

        try:
            async with self._db.connect() as conn:
                async with conn.begin():
                    result = await conn.execute(stmt)
        except SQLAlchemyError as e:
            self._logger.error(f"Clearing {collection} failed: {e}")
            raise PersistenceError(f"Delete rejected: {e}", collection=collection) from e

        self._logger.info(f"Removed {result.rowcount} documents from {collection}")
        return result.rowcount

    async def upsert_batch(
        self,
        items: list[dict[str, Any]],
        collection: str,
    ) -> list[UpsertResult]:
        """Update-or-insert every item on its natural key.

        Items are written in independent transactions: a rejected item
        does not undo the others.

        Args:
            items: Documents to write.
            collection: Target collection.

        Returns:
            One UpsertResult per item, in input order.

        Raises:
            PersistenceError: After the whole batch ran, if any item failed.
                The exception carries every per-item result.
        """
        results: list[UpsertResult] = []
        if not items:
            return results

        try:
            async with self._db.connect() as conn:
                for item in items:
                    results.append(await self._upsert_one(conn, item, collection))
        except SQLAlchemyError as e:
            self._logger.error(f"{collection} upsert aborted: {e}")
            raise PersistenceError(
                f"Upsert into {collection} aborted: {e}",
                collection=collection,
                results=results,
            ) from e

        failed = [r for r in results if not r.success]
        self._logger.info(
            f"{collection} upsert complete: "
            f"upserted={len(results) - len(failed)}, errors={len(failed)}"
        )

        if failed:
            raise PersistenceError(
                f"{len(failed)}/{len(results)} upserts rejected in {collection}",
                collection=collection,
                results=results,
            )
        return results

    async def bulk_insert(
        self,
        items: list[dict[str, Any]],
        collection: str,
        clear: bool = False,
    ) -> int:
        """Insert items without key matching, in one transaction.

        Without ``clear``, only safe right after replace_all({}, collection).
        With ``clear``, the collection is emptied inside the same
        transaction, so a rejected insert keeps the previous content.

        Args:
            items: Reference records.
            collection: Target collection.
            clear: Delete the current content of the collection first.

        Returns:
            Number of inserted documents.

        Raises:
            PersistenceError: If the insert is rejected (nothing is written).
        """
        if not items and not clear:
            return 0

        rows = []
        for position, item in enumerate(items):
            key_id, key_title = self.reference_key(item, position)
            rows.append(
                {
                    "collection": collection,
                    "key_id": key_id,
                    "key_title": key_title,
                    "payload": dict(item),
                }
            )

        try:
            async with self._db.connect() as conn:
                async with conn.begin():
                    if clear:
                        await conn.execute(
                            delete(CatalogDocument).where(CatalogDocument.collection == collection)
                        )
                    if rows:
                        await conn.execute(insert(CatalogDocument), rows)
        except SQLAlchemyError as e:
            self._logger.error(f"Bulk insert into {collection} failed: {e}")
            raise PersistenceError(f"Insert rejected: {e}", collection=collection) from e

        self._logger.info(f"Inserted {len(rows)} documents into {collection}")
        return len(rows)

    async def find(
        self,
        collection: str,
        criteria: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Return payloads of a collection, in insertion order.

        Args:
            collection: Collection to read.
            criteria: Optional natural-key filters.

        Returns:
            List of stored documents.

        Raises:
            PersistenceError: If the store cannot be read.
        """
        stmt = (
            select(CatalogDocument.payload)
            .where(
                CatalogDocument.collection == collection,
                *self._criteria_filters(criteria or {}),
            )
            .order_by(CatalogDocument.id)
        )
        rows = await self._read(stmt, collection)
        return [row[0] for row in rows]

    async def count(self, collection: str) -> int:
        """Count documents in a collection."""
        stmt = (
            select(func.count())
            .select_from(CatalogDocument)
            .where(CatalogDocument.collection == collection)
        )
        rows = await self._read(stmt, collection)
        return rows[0][0] if rows else 0

    # =========================================================================
    # Internal Methods
    # =========================================================================

    async def _read(self, stmt, collection: str) -> list:
        """Run a SELECT on its own connection; store errors become PersistenceError."""
        try:
            async with self._db.connect() as conn:
                result = await conn.execute(stmt)
                return list(result.all())
        except SQLAlchemyError as e:
            self._logger.error(f"Reading {collection} failed: {e}")
            raise PersistenceError(f"Read rejected: {e}", collection=collection) from e

    async def _upsert_one(
        self,
        conn: AsyncConnection,
        item: dict[str, Any],
        collection: str,
    ) -> UpsertResult:
        """Upsert a single item in its own transaction."""
        try:
            key_id, key_title = self.natural_key(item, collection)
        except KeyError as e:
            message = f"{collection}: item without natural key field {e}"
            self._logger.warning(message)
            return UpsertResult(key=None, success=False, error=message)

        key = (key_id, key_title)
        try:
            stmt = self._build_upsert(conn.dialect.name, collection, key, item)
            async with conn.begin():
                await conn.execute(stmt)
        except SQLAlchemyError as e:
            message = f"{collection}: upsert of {key} rejected: {e}"
            self._logger.warning(message)
            return UpsertResult(key=key, success=False, error=message)

        return UpsertResult(key=key, success=True)

    @staticmethod
    def _build_upsert(
        dialect: str,
        collection: str,
        key: NaturalKey,
        item: dict[str, Any],
    ):
        """Build an INSERT .. ON CONFLICT DO UPDATE for the dialect."""
        dialect_insert = _UPSERT_INSERTS.get(dialect)
        if dialect_insert is None:
            raise PersistenceError(f"Upsert not supported on dialect '{dialect}'")

        stmt = dialect_insert(CatalogDocument).values(
            collection=collection,
            key_id=key[0],
            key_title=key[1],
            payload=dict(item),
        )
        return stmt.on_conflict_do_update(
            index_elements=["collection", "key_id", "key_title"],
            set_={"payload": stmt.excluded.payload, "updated_at": utcnow()},
        )

    @staticmethod
    def _criteria_filters(criteria: dict[str, Any]) -> list:
        """Translate natural-key criteria into WHERE clauses."""
        filters = []
        for field_name, value in criteria.items():
            column = _CRITERIA_COLUMNS.get(field_name)
            if column is None:
                raise ValueError(
                    f"Unsupported criteria field '{field_name}'. "
                    f"Valid: {sorted(_CRITERIA_COLUMNS)}"
                )
            filters.append(column == str(value))
        return filters
