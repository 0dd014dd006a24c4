"""Day-walk orchestration.

Walks the showtimes provider one day offset at a time, then fetches
upcoming releases. Steps are strictly sequential and separated by a
fixed delay; reference data is synchronized concurrently.

States:
    DAY(n) -> DAY(n+1) | UPCOMING | HALTED
    UPCOMING -> COMPLETED | HALTED
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

import httpx

from cinefeed.database.connection import DatabaseConnection
from cinefeed.database.repositories import DocumentRepository
from cinefeed.etl.aggregation import ExtraDataMerger, dedupe_schedules
from cinefeed.etl.extractors.client import HttpFetcher
from cinefeed.etl.extractors.kvikmyndir import ShowtimesEndpoints, decode_items
from cinefeed.etl.pipeline.reference import ReferenceSyncer
from cinefeed.etl.types import WalkOutcome
from cinefeed.etl.utils import SnapshotWriter, setup_logger
from cinefeed.exceptions import FetchError, ParseError, PersistenceError
from cinefeed.settings import PathsSettings, ShowtimesSettings, settings

logger = setup_logger("cinefeed.pipeline.orchestrator")

SleepFunc = Callable[[float], Awaitable[Any]]


class WalkState(str, Enum):
    """States of the day-walk."""

    DAY = "day"
    UPCOMING = "upcoming"
    COMPLETED = "completed"
    HALTED = "halted"


class DayWalker:
    """Sequential showtimes ingestion over day offsets 0..max_days.

    Offset max_days + 1 is still requested: when the provider has data
    for it, its collection is cleared and the walk moves on to upcoming
    releases.

    Attributes:
        cfg: Provider settings (max_days, step_delay, collections).
    """

    def __init__(
        self,
        fetcher: HttpFetcher,
        repository: DocumentRepository,
        merger: ExtraDataMerger,
        endpoints: ShowtimesEndpoints | None = None,
        cfg: ShowtimesSettings | None = None,
        paths: PathsSettings | None = None,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        """Initialize walker.

        Args:
            fetcher: Open fetch client.
            repository: Persistence gateway.
            merger: Enrichment merger.
            endpoints: URL builder (built from cfg by default).
            cfg: Provider settings.
            paths: Snapshot paths.
            sleep: Awaitable delay, replaced in tests.
        """
        self.cfg = cfg or settings.showtimes
        self._fetcher = fetcher
        self._repository = repository
        self._merger = merger
        self._endpoints = endpoints or ShowtimesEndpoints(self.cfg)
        self._paths = paths or settings.paths
        self._sleep = sleep

    async def run(self) -> WalkOutcome:
        """Walk from DAY(0) until COMPLETED or HALTED.

        Returns:
            WalkOutcome describing how far the walk got.
        """
        outcome = WalkOutcome()
        state, day = WalkState.DAY, 0

        while state in (WalkState.DAY, WalkState.UPCOMING):
            if state is WalkState.DAY:
                state, day = await self._step_day(day, outcome)
            else:
                state = await self._step_upcoming(outcome)

        outcome.completed = state is WalkState.COMPLETED
        logger.info(
            f"Day-walk {state.value}: days={outcome.days_ingested}, "
            f"errors={len(outcome.errors)}"
        )
        return outcome

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    async def _step_day(self, day: int, outcome: WalkOutcome) -> tuple[WalkState, int]:
        """Ingest one day offset and choose the next state."""
        url = self._endpoints.showtimes(day)
        try:
            items = decode_items(await self._fetcher.fetch(url), url)
        except (FetchError, ParseError) as e:
            self._record(outcome, f"Day {day} halted ({url}): {e}")
            outcome.halted_at = day
            return WalkState.HALTED, day

        if items is None:
            logger.info(f"No showtimes for day {day}, moving to upcoming releases")
            return WalkState.UPCOMING, day

        if day > self.cfg.max_days:
            # Past the walked range: the collection is cleared, not refilled.
            try:
                await self._repository.replace_all({}, self.cfg.day_collection(day))
            except PersistenceError as e:
                self._record(outcome, f"Clearing {self.cfg.day_collection(day)} failed: {e}")
            return WalkState.UPCOMING, day

        dedupe_schedules(items)
        await self._store(items, self.cfg.day_collection(day), None, outcome)
        outcome.days_ingested.append(day)

        await self._sleep(self.cfg.step_delay)
        return WalkState.DAY, day + 1

    async def _step_upcoming(self, outcome: WalkOutcome) -> WalkState:
        """Ingest upcoming releases after the step delay."""
        await self._sleep(self.cfg.step_delay)

        url = self._endpoints.upcoming()
        try:
            items = decode_items(await self._fetcher.fetch(url), url)
        except (FetchError, ParseError) as e:
            self._record(outcome, f"Upcoming releases halted ({url}): {e}")
            return WalkState.HALTED

        if items is None:
            self._record(outcome, f"Upcoming releases halted ({url}): empty payload")
            return WalkState.HALTED

        await self._store(
            items,
            self.cfg.upcoming_collection,
            self.cfg.extra_images_collection,
            outcome,
        )
        return WalkState.COMPLETED

    async def _store(
        self,
        items: list[dict[str, Any]],
        collection: str,
        aux_collection: str | None,
        outcome: WalkOutcome,
    ) -> None:
        """Clear the collection, then enrich and persist the items."""
        try:
            await self._repository.replace_all({}, collection)
        except PersistenceError as e:
            self._record(outcome, f"Clearing {collection} failed: {e}")

        try:
            await self._merger.enrich(
                items,
                self._paths.snapshot_path(collection),
                aux_collection,
                collection,
            )
        except PersistenceError as e:
            self._record(outcome, f"Persisting {collection} failed: {e}")

    @staticmethod
    def _record(outcome: WalkOutcome, message: str) -> None:
        logger.error(message)
        outcome.errors.append(message)


# =============================================================================
# ENTRY POINT
# =============================================================================


async def init_services(
    on_complete: Callable[[], Any] | None = None,
    db: DatabaseConnection | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    paths: PathsSettings | None = None,
    sleep: SleepFunc = asyncio.sleep,
) -> WalkOutcome:
    """Run reference sync and the day-walk concurrently.

    Args:
        on_complete: Called (and awaited if async) once the walk completes.
        db: Database connection (shared instance by default).
        transport: Optional httpx transport (used by tests).
        paths: Snapshot paths.
        sleep: Awaitable delay between walk steps.

    Returns:
        WalkOutcome of the day-walk.
    """
    repository = DocumentRepository(db)
    snapshots = SnapshotWriter()

    async with HttpFetcher(transport=transport) as fetcher:
        merger = ExtraDataMerger(repository, snapshots=snapshots, paths=paths)
        walker = DayWalker(fetcher, repository, merger, paths=paths, sleep=sleep)
        syncer = ReferenceSyncer(fetcher, repository, snapshots=snapshots, paths=paths)

        walk_result, sync_result = await asyncio.gather(
            walker.run(),
            syncer.sync_all(),
            return_exceptions=True,
        )

    outcome = _walk_outcome(walk_result)
    if isinstance(sync_result, BaseException):
        if not isinstance(sync_result, Exception):
            raise sync_result
        logger.error(f"Reference sync aborted: {sync_result!r}")
    else:
        for result in sync_result:
            if not result.success:
                logger.warning(f"Reference sync {result.collection} failed: {result.error}")

    if outcome.completed and on_complete is not None:
        result = on_complete()
        if inspect.isawaitable(result):
            await result

    return outcome


def _walk_outcome(result: WalkOutcome | BaseException) -> WalkOutcome:
    """The walk's outcome, or a failed one if the walk raised."""
    if not isinstance(result, BaseException):
        return result
    if not isinstance(result, Exception):
        raise result
    message = f"Day-walk aborted: {result!r}"
    logger.error(message)
    return WalkOutcome(errors=[message])
