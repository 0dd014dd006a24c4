"""TMDB enrichment merger for showtime items.

Merges TMDB metadata into provider items using the IMDb id as
merge key, collects extra images into an auxiliary collection,
then snapshots and persists the target collection.
"""

from contextlib import AsyncExitStack
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx

from cinefeed.database.repositories import DocumentRepository
from cinefeed.etl.extractors.client import HttpFetcher
from cinefeed.etl.extractors.tmdb import TMDBClient, TMDBClientError
from cinefeed.etl.types import ExtraImagesDocument, TMDBMetadata
from cinefeed.etl.utils.logger import setup_logger
from cinefeed.etl.utils.snapshot import SnapshotWriter
from cinefeed.exceptions import FetchError, PersistenceError
from cinefeed.settings import PathsSettings, TMDBSettings, settings

logger = setup_logger("cinefeed.merger")


# =============================================================================
# MERGE STATISTICS
# =============================================================================


@dataclass
class MergeStats:
    """Statistics for one enrich call.

    Attributes:
        total: Items received.
        enriched: Items that received TMDB metadata.
        without_imdb: Items with no IMDb id.
        not_found: Items TMDB did not match.
        failed: Items whose lookup failed.
        extra_images: Extra-image documents collected.
        posters: Posters downloaded.
    """

    total: int = 0
    enriched: int = 0
    without_imdb: int = 0
    not_found: int = 0
    failed: int = 0
    extra_images: int = 0
    posters: int = 0

    def log_summary(self, collection: str) -> None:
        """Log merge statistics summary."""
        logger.info(
            f"{collection} enrichment: {self.enriched}/{self.total} enriched, "
            f"no_imdb={self.without_imdb}, not_found={self.not_found}, "
            f"failed={self.failed}, extra_images={self.extra_images}, "
            f"posters={self.posters}"
        )


def imdb_id_of(item: dict[str, Any]) -> str | None:
    """Return the IMDb id of an item ('imdbid' or 'ids.imdb')."""
    imdb_id = item.get("imdbid") or (item.get("ids") or {}).get("imdb")
    if not imdb_id:
        return None
    imdb_id = str(imdb_id).strip()
    if imdb_id.isdigit():
        imdb_id = f"tt{imdb_id}"
    return imdb_id


# =============================================================================
# EXTRA DATA MERGER
# =============================================================================


class ExtraDataMerger:
    """Enriches items with TMDB data and persists them.

    When TMDB is not configured, items are stored unchanged.

    Attributes:
        stats: Statistics of the last enrich call.
    """

    def __init__(
        self,
        repository: DocumentRepository,
        tmdb: TMDBClient | None = None,
        fetcher: HttpFetcher | None = None,
        snapshots: SnapshotWriter | None = None,
        cfg: TMDBSettings | None = None,
        paths: PathsSettings | None = None,
    ) -> None:
        """Initialize merger.

        Args:
            repository: Persistence gateway.
            tmdb: Open TMDB client; one is opened per call when omitted.
            fetcher: Open fetch client for poster downloads.
            snapshots: Snapshot writer.
            cfg: TMDB settings.
            paths: Path settings (poster directory).
        """
        self._repository = repository
        self._tmdb = tmdb
        self._fetcher = fetcher
        self._snapshots = snapshots or SnapshotWriter()
        self.cfg = cfg or settings.tmdb
        self.paths = paths or settings.paths
        self.stats = MergeStats()

    async def enrich(
        self,
        items: list[dict[str, Any]],
        snapshot_path: Path,
        aux_collection: str | None,
        target_collection: str,
    ) -> list[dict[str, Any]]:
        """Enrich items, snapshot them and upsert the target collection.

        Args:
            items: Provider items (modified in place).
            snapshot_path: JSON snapshot file for the enriched list.
            aux_collection: Collection receiving extra images, if any.
            target_collection: Collection receiving the items.

        Returns:
            The enriched items, once the target collection is populated.

        Raises:
            PersistenceError: If any item of the target collection was
                rejected by the store.
        """
        self.stats = MergeStats(total=len(items))

        if self._tmdb is None and not self.cfg.is_configured:
            logger.info(f"TMDB not configured, storing {target_collection} unenriched")
        else:
            extra_docs = await self._enrich_all(items, want_images=aux_collection is not None)
            if aux_collection and extra_docs:
                await self._store_extra_images(extra_docs, aux_collection)

        self.stats.log_summary(target_collection)
        self._snapshots.write_json(items, snapshot_path)
        await self._repository.upsert_batch(items, target_collection)
        return items

    # =========================================================================
    # Enrichment
    # =========================================================================

    async def _enrich_all(
        self,
        items: list[dict[str, Any]],
        want_images: bool,
    ) -> list[ExtraImagesDocument]:
        """Look up every item on TMDB."""
        extra_docs: list[ExtraImagesDocument] = []

        async with AsyncExitStack() as stack:
            tmdb = self._tmdb or await stack.enter_async_context(TMDBClient(self.cfg))
            fetcher = None
            if self.cfg.download_posters:
                fetcher = self._fetcher or await stack.enter_async_context(HttpFetcher())

            for item in items:
                await self._enrich_item(item, tmdb, fetcher, want_images, extra_docs)

        return extra_docs

    async def _enrich_item(
        self,
        item: dict[str, Any],
        tmdb: TMDBClient,
        fetcher: HttpFetcher | None,
        want_images: bool,
        extra_docs: list[ExtraImagesDocument],
    ) -> None:
        """Attach TMDB metadata to one item; failures leave it unenriched."""
        imdb_id = imdb_id_of(item)
        if imdb_id is None:
            self.stats.without_imdb += 1
            return

        try:
            movie = await tmdb.find_by_imdb_id(imdb_id)
        except (TMDBClientError, httpx.HTTPError) as e:
            logger.warning(f"TMDB lookup failed for {imdb_id}: {e}")
            self.stats.failed += 1
            return

        if movie is None:
            self.stats.not_found += 1
            return

        metadata = TMDBMetadata(
            id=movie["id"],
            poster=self.cfg.image_url(movie.get("poster_path")),
            backdrop=self.cfg.image_url(movie.get("backdrop_path")),
        )
        if movie.get("vote_average") is not None:
            metadata["vote_average"] = movie["vote_average"]
        if movie.get("overview"):
            metadata["overview"] = movie["overview"]
        item["tmdb"] = metadata
        self.stats.enriched += 1

        if want_images:
            doc = await self._collect_images(tmdb, imdb_id, movie["id"])
            if doc is not None:
                extra_docs.append(doc)

        if fetcher is not None and metadata["poster"]:
            await self._download_poster(fetcher, imdb_id, metadata["poster"])

    async def _collect_images(
        self,
        tmdb: TMDBClient,
        imdb_id: str,
        tmdb_id: int,
    ) -> ExtraImagesDocument | None:
        """Build the extra-images document of one movie."""
        try:
            payload = await tmdb.get_images(tmdb_id)
        except (TMDBClientError, httpx.HTTPError) as e:
            logger.warning(f"TMDB images failed for {imdb_id}: {e}")
            return None

        entries = (payload.get("backdrops") or []) + (payload.get("posters") or [])
        urls = [self.cfg.image_url(entry.get("file_path")) for entry in entries]
        images = [url for url in urls if url][: self.cfg.max_extra_images]
        if not images:
            return None

        self.stats.extra_images += 1
        return ExtraImagesDocument(imdbid=imdb_id, tmdb_id=tmdb_id, images=images)

    async def _download_poster(self, fetcher: HttpFetcher, imdb_id: str, url: str) -> None:
        """Save the poster under posters_dir/<imdbid>.jpg."""
        try:
            content = await fetcher.fetch_binary(url)
            path = self.paths.posters_dir / f"{imdb_id}.jpg"
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        except (FetchError, OSError) as e:
            logger.warning(f"Poster download failed for {imdb_id}: {e}")
            return
        self.stats.posters += 1

    async def _store_extra_images(
        self,
        docs: list[ExtraImagesDocument],
        collection: str,
    ) -> None:
        """Upsert extra images; rejected documents are logged only."""
        try:
            await self._repository.upsert_batch(list(docs), collection)
        except PersistenceError as e:
            logger.error(f"{len(e.failed)} extra-image documents rejected in {collection}")
