"""Reference-data synchronization (genres, theaters).

Each flow fetches its list, normalizes key names, writes a
snapshot and replaces the whole collection in one transaction.
Flows are independent: one failing never affects the other.
"""

import asyncio

from cinefeed.database.repositories import DocumentRepository
from cinefeed.etl.extractors.client import HttpFetcher
from cinefeed.etl.extractors.kvikmyndir import ShowtimesEndpoints, decode_items
from cinefeed.etl.types import ReferenceRecord, SyncResult
from cinefeed.etl.utils import SnapshotWriter, clean_property_names, setup_logger
from cinefeed.exceptions import FetchError, ParseError, PersistenceError
from cinefeed.settings import PathsSettings, settings

logger = setup_logger("cinefeed.pipeline.reference")

GENRES_COLLECTION = "genres"
THEATERS_COLLECTION = "theaters"


class ReferenceSyncer:
    """Refreshes reference collections from the showtimes provider."""

    def __init__(
        self,
        fetcher: HttpFetcher,
        repository: DocumentRepository,
        endpoints: ShowtimesEndpoints | None = None,
        snapshots: SnapshotWriter | None = None,
        paths: PathsSettings | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._repository = repository
        self._endpoints = endpoints or ShowtimesEndpoints()
        self._snapshots = snapshots or SnapshotWriter()
        self._paths = paths or settings.paths

    async def sync_all(self) -> list[SyncResult]:
        """Run the genres and theaters flows concurrently."""
        return list(
            await asyncio.gather(
                self.sync(GENRES_COLLECTION, self._endpoints.genres()),
                self.sync(THEATERS_COLLECTION, self._endpoints.theaters()),
            )
        )

    async def sync(self, collection: str, url: str) -> SyncResult:
        """Fetch one reference list and replace its collection.

        An empty payload or a rejected insert leaves the stored
        collection untouched.

        Args:
            collection: Target collection.
            url: Provider URL of the list.

        Returns:
            SyncResult; errors are reported there, never raised.
        """
        try:
            body = await self._fetcher.fetch(url)
            items = decode_items(body, url)
        except (FetchError, ParseError) as e:
            logger.error(f"{collection} sync failed ({url}): {e}")
            return SyncResult(collection, success=False, error=str(e))

        if items is None:
            logger.warning(f"{collection} sync: empty payload from {url}, keeping stored data")
            return SyncResult(collection, success=False, error="empty payload")

        records: list[ReferenceRecord] = clean_property_names(items)
        self._snapshots.write_json(records, self._paths.snapshot_path(collection))

        try:
            count = await self._repository.bulk_insert(records, collection, clear=True)
        except PersistenceError as e:
            logger.error(f"{collection} sync failed to persist: {e}")
            return SyncResult(collection, success=False, error=str(e))

        logger.info(f"{collection} synchronized: {count} records")
        return SyncResult(collection, success=True, count=count)
