"""Tests for the day-walk state machine and init_services."""

import json
from pathlib import Path

import httpx
import pytest

from cinefeed.database.connection import DatabaseConnection
from cinefeed.database.repositories import DocumentRepository
from cinefeed.etl.aggregation.merger import ExtraDataMerger
from cinefeed.etl.extractors.kvikmyndir import ShowtimesEndpoints
from cinefeed.etl.extractors.tmdb import TMDBClient
from cinefeed.etl.pipeline.orchestrator import DayWalker, init_services
from cinefeed.etl.pipeline.reference import ReferenceSyncer
from cinefeed.exceptions import FetchError, FetchErrorKind
from cinefeed.settings import PathsSettings, ShowtimesSettings, TMDBSettings, settings

pytestmark = pytest.mark.integration


def _day_payload(day: int) -> str:
    return json.dumps(
        [
            {"id": 100 + day, "title": f"Movie {day}", "showtimes": [{"cinema": 1, "schedule": ["20:00", "20:00"]}]},
            {"id": 200 + day, "title": f"Other {day}", "showtimes": []},
        ]
    )


UPCOMING = json.dumps([{"id": 900, "title": "Soon"}, {"id": 901, "title": "Later"}])


class FakeFetcher:
    """Serves canned bodies by URL; values that are exceptions are raised."""

    def __init__(self, responses: dict[str, str | Exception]) -> None:
        self.responses = responses
        self.urls: list[str] = []

    async def fetch(self, url: str) -> str:
        self.urls.append(url)
        response = self.responses[url]
        if isinstance(response, Exception):
            raise response
        return response


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def sleep() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def make_walker(repository, showtimes_cfg, paths, tmdb_off, sleep):
    def _make(responses: dict[str, str | Exception]) -> tuple[DayWalker, FakeFetcher]:
        fetcher = FakeFetcher(responses)
        merger = ExtraDataMerger(repository, cfg=tmdb_off, paths=paths)
        walker = DayWalker(fetcher, repository, merger, cfg=showtimes_cfg, paths=paths, sleep=sleep)
        return walker, fetcher

    return _make


def _all_days(endpoints: ShowtimesEndpoints) -> dict[str, str | Exception]:
    responses: dict[str, str | Exception] = {endpoints.showtimes(day): _day_payload(day) for day in range(6)}
    responses[endpoints.upcoming()] = UPCOMING
    return responses


class TestFullWalk:
    @staticmethod
    async def test_walks_every_day_then_upcoming(
        make_walker,
        endpoints: ShowtimesEndpoints,
        repository: DocumentRepository,
        sleep: SleepRecorder,
        paths: PathsSettings,
    ) -> None:
        await repository.upsert_batch([{"id": 5, "title": "Previous run"}], "movies5")
        walker, fetcher = make_walker(_all_days(endpoints))

        outcome = await walker.run()

        assert outcome.completed is True
        assert outcome.days_ingested == [0, 1, 2, 3, 4]
        assert outcome.halted_at is None
        assert fetcher.urls[-2:] == [endpoints.showtimes(5), endpoints.upcoming()]
        assert sleep.delays == [10.0] * 6
        assert await repository.count("movies5") == 0
        assert not paths.snapshot_path("movies5").exists()
        for day in range(5):
            assert await repository.count(f"movies{day}") == 2
            assert paths.snapshot_path(f"movies{day}").exists()
        assert await repository.count("upcoming") == 2

    @staticmethod
    async def test_schedules_deduplicated_before_persistence(
        make_walker,
        endpoints: ShowtimesEndpoints,
        repository: DocumentRepository,
    ) -> None:
        walker, _ = make_walker(_all_days(endpoints))

        await walker.run()

        stored = await repository.find("movies0", {"id": 100})
        assert stored[0]["showtimes"][0]["schedule"] == ["20:00"]

    @staticmethod
    async def test_day_collection_is_replaced(
        make_walker,
        endpoints: ShowtimesEndpoints,
        repository: DocumentRepository,
    ) -> None:
        await repository.upsert_batch([{"id": 1, "title": "Stale"}], "movies0")
        walker, _ = make_walker(_all_days(endpoints))

        await walker.run()

        assert {m["title"] for m in await repository.find("movies0")} == {"Movie 0", "Other 0"}


class TestShortCircuit:
    @staticmethod
    async def test_empty_payload_at_offset_two_goes_to_upcoming(
        make_walker,
        endpoints: ShowtimesEndpoints,
        repository: DocumentRepository,
    ) -> None:
        for day in (2, 3, 4):
            await repository.upsert_batch([{"id": day, "title": "Previous run"}], f"movies{day}")
        responses = _all_days(endpoints)
        responses[endpoints.showtimes(2)] = ""

        walker, fetcher = make_walker(responses)
        outcome = await walker.run()

        assert outcome.completed is True
        assert outcome.days_ingested == [0, 1]
        assert endpoints.showtimes(3) not in fetcher.urls
        assert endpoints.showtimes(4) not in fetcher.urls
        assert fetcher.urls[-1] == endpoints.upcoming()
        for day in (2, 3, 4):
            assert await repository.find(f"movies{day}") == [{"id": day, "title": "Previous run"}]
        assert await repository.count("upcoming") == 2

    @staticmethod
    async def test_empty_json_list_goes_to_upcoming(
        make_walker,
        endpoints: ShowtimesEndpoints,
    ) -> None:
        responses = _all_days(endpoints)
        responses[endpoints.showtimes(0)] = "[]"

        walker, fetcher = make_walker(responses)
        outcome = await walker.run()

        assert outcome.completed is True
        assert outcome.days_ingested == []
        assert fetcher.urls == [endpoints.showtimes(0), endpoints.upcoming()]


class TestHalt:
    @staticmethod
    async def test_parse_failure_halts_without_touching_later_days(
        make_walker,
        endpoints: ShowtimesEndpoints,
        repository: DocumentRepository,
        sleep: SleepRecorder,
    ) -> None:
        for day in (1, 2, 3, 4):
            await repository.upsert_batch([{"id": day, "title": "Previous run"}], f"movies{day}")
        responses = _all_days(endpoints)
        responses[endpoints.showtimes(1)] = "<html>Bad gateway</html>"

        walker, fetcher = make_walker(responses)
        outcome = await walker.run()

        assert outcome.completed is False
        assert outcome.halted_at == 1
        assert outcome.days_ingested == [0]
        assert fetcher.urls == [endpoints.showtimes(0), endpoints.showtimes(1)]
        assert sleep.delays == [10.0]
        assert len(outcome.errors) == 1
        assert endpoints.showtimes(1) in outcome.errors[0]
        for day in (1, 2, 3, 4):
            assert await repository.find(f"movies{day}") == [{"id": day, "title": "Previous run"}]
        assert await repository.count("upcoming") == 0

    @staticmethod
    async def test_fetch_failure_halts(make_walker, endpoints: ShowtimesEndpoints) -> None:
        responses = _all_days(endpoints)
        url = endpoints.showtimes(0)
        responses[url] = FetchError(FetchErrorKind.TIMEOUT, url, "timed out")

        walker, fetcher = make_walker(responses)
        outcome = await walker.run()

        assert outcome.completed is False
        assert outcome.halted_at == 0
        assert fetcher.urls == [url]

    @staticmethod
    async def test_upcoming_failure_is_not_completion(
        make_walker,
        endpoints: ShowtimesEndpoints,
        repository: DocumentRepository,
    ) -> None:
        responses = _all_days(endpoints)
        responses[endpoints.upcoming()] = FetchError(
            FetchErrorKind.REMOTE_ERROR, endpoints.upcoming(), "Bad Gateway", status_code=502
        )

        walker, _ = make_walker(responses)
        outcome = await walker.run()

        assert outcome.completed is False
        assert outcome.halted_at is None
        assert outcome.days_ingested == [0, 1, 2, 3, 4]
        assert await repository.count("upcoming") == 0

    @staticmethod
    async def test_empty_upcoming_is_not_completion(make_walker, endpoints: ShowtimesEndpoints) -> None:
        responses = _all_days(endpoints)
        responses[endpoints.upcoming()] = ""

        walker, _ = make_walker(responses)
        outcome = await walker.run()

        assert outcome.completed is False


class TestPastLastDay:
    @staticmethod
    async def test_empty_offset_after_last_day_goes_to_upcoming(
        make_walker,
        endpoints: ShowtimesEndpoints,
        repository: DocumentRepository,
    ) -> None:
        await repository.upsert_batch([{"id": 5, "title": "Previous run"}], "movies5")
        responses = _all_days(endpoints)
        responses[endpoints.showtimes(5)] = "[]"

        walker, fetcher = make_walker(responses)
        outcome = await walker.run()

        assert outcome.completed is True
        assert fetcher.urls[-2:] == [endpoints.showtimes(5), endpoints.upcoming()]
        assert await repository.count("movies5") == 1

    @staticmethod
    async def test_malformed_offset_after_last_day_halts(
        make_walker,
        endpoints: ShowtimesEndpoints,
        repository: DocumentRepository,
    ) -> None:
        responses = _all_days(endpoints)
        responses[endpoints.showtimes(5)] = "<html>"

        walker, fetcher = make_walker(responses)
        outcome = await walker.run()

        assert outcome.completed is False
        assert outcome.halted_at == 5
        assert outcome.days_ingested == [0, 1, 2, 3, 4]
        assert endpoints.upcoming() not in fetcher.urls


class TestStoreFailures:
    @staticmethod
    async def test_unreachable_store_still_returns_outcome(
        tmp_path: Path,
        endpoints: ShowtimesEndpoints,
        showtimes_cfg: ShowtimesSettings,
        paths: PathsSettings,
        tmdb_off: TMDBSettings,
        sleep: SleepRecorder,
    ) -> None:
        db = DatabaseConnection(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'cinefeed.db'}", echo=False)
        repository = DocumentRepository(db)
        merger = ExtraDataMerger(repository, cfg=tmdb_off, paths=paths)
        walker = DayWalker(
            FakeFetcher(_all_days(endpoints)), repository, merger, cfg=showtimes_cfg, paths=paths, sleep=sleep
        )

        outcome = await walker.run()
        await db.dispose()

        assert outcome.days_ingested == [0, 1, 2, 3, 4]
        assert any("Persisting movies0 failed" in error for error in outcome.errors)
        assert any("Clearing upcoming failed" in error for error in outcome.errors)
        assert paths.snapshot_path("movies0").exists()

    @staticmethod
    async def test_non_json_tmdb_answer_keeps_items_unenriched(
        repository: DocumentRepository,
        endpoints: ShowtimesEndpoints,
        showtimes_cfg: ShowtimesSettings,
        paths: PathsSettings,
        tmdb_on: TMDBSettings,
        sleep: SleepRecorder,
    ) -> None:
        day = [{"id": 1, "title": "Alien", "imdbid": "tt0078748", "showtimes": []}]
        responses = {
            endpoints.showtimes(0): json.dumps(day),
            endpoints.showtimes(1): "",
            endpoints.upcoming(): UPCOMING,
        }
        cfg = tmdb_on.model_copy(update={"min_request_delay": 0.0})
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>maintenance</html>"))

        async with TMDBClient(cfg, transport=transport) as tmdb:
            merger = ExtraDataMerger(repository, tmdb=tmdb, cfg=cfg, paths=paths)
            walker = DayWalker(
                FakeFetcher(responses), repository, merger, cfg=showtimes_cfg, paths=paths, sleep=sleep
            )
            outcome = await walker.run()

        assert outcome.completed is True
        assert outcome.errors == []
        assert await repository.find("movies0") == day


class TestMaxDays:
    @staticmethod
    async def test_zero_max_days(
        repository: DocumentRepository,
        paths: PathsSettings,
        tmdb_off: TMDBSettings,
        sleep: SleepRecorder,
    ) -> None:
        cfg = ShowtimesSettings(
            SHOWTIMES_BASE_URL="https://api.showtimes.test",
            SHOWTIMES_API_KEY="k",
            SHOWTIMES_MAX_DAYS=0,
            SHOWTIMES_STEP_DELAY=1.5,
        )
        endpoints = ShowtimesEndpoints(cfg)
        fetcher = FakeFetcher(
            {
                endpoints.showtimes(0): _day_payload(0),
                endpoints.showtimes(1): _day_payload(1),
                endpoints.upcoming(): UPCOMING,
            }
        )
        merger = ExtraDataMerger(repository, cfg=tmdb_off, paths=paths)

        outcome = await DayWalker(fetcher, repository, merger, cfg=cfg, paths=paths, sleep=sleep).run()

        assert outcome.completed is True
        assert outcome.days_ingested == [0]
        assert fetcher.urls == [endpoints.showtimes(0), endpoints.showtimes(1), endpoints.upcoming()]
        assert sleep.delays == [1.5, 1.5]
        assert await repository.count("movies1") == 0


def _provider(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path.startswith("/showtimes/date"):
        day = int(request.url.params["dagur"])
        return httpx.Response(200, text=_day_payload(day))
    if path.startswith("/upcoming"):
        return httpx.Response(200, text=UPCOMING)
    if path == "/genres":
        return httpx.Response(200, json=[{"ID": 1, "Name\t": "Drama"}])
    if path == "/theaters":
        return httpx.Response(500, text="boom")
    return httpx.Response(404)


class TestInitServices:
    @staticmethod
    async def test_calls_on_complete_once(
        db: DatabaseConnection,
        paths: PathsSettings,
        sleep: SleepRecorder,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr(settings.tmdb, "api_key", "")
        calls: list[str] = []

        outcome = await init_services(
            on_complete=lambda: calls.append("done"),
            db=db,
            transport=httpx.MockTransport(_provider),
            paths=paths,
            sleep=sleep,
        )

        repository = DocumentRepository(db)
        assert outcome.completed is True
        assert calls == ["done"]
        assert await repository.count("upcoming") == 2
        assert await repository.find("genres") == [{"ID": 1, "Name": "Drama"}]
        assert await repository.count("theaters") == 0

    @staticmethod
    async def test_no_completion_callback_on_halt(
        db: DatabaseConnection,
        paths: PathsSettings,
        sleep: SleepRecorder,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr(settings.tmdb, "api_key", "")
        calls: list[str] = []

        async def on_complete() -> None:
            calls.append("done")

        outcome = await init_services(
            on_complete=on_complete,
            db=db,
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text="not json")),
            paths=paths,
            sleep=sleep,
        )

        assert outcome.completed is False
        assert outcome.halted_at == 0
        assert calls == []

    @staticmethod
    async def test_walk_crash_is_reported_not_raised(
        db: DatabaseConnection,
        paths: PathsSettings,
        sleep: SleepRecorder,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr(settings.tmdb, "api_key", "")

        async def crash(self) -> None:
            raise RuntimeError("walker crashed")

        monkeypatch.setattr(DayWalker, "run", crash)
        calls: list[str] = []

        outcome = await init_services(
            on_complete=lambda: calls.append("done"),
            db=db,
            transport=httpx.MockTransport(_provider),
            paths=paths,
            sleep=sleep,
        )

        assert outcome.completed is False
        assert "walker crashed" in outcome.errors[0]
        assert calls == []
        assert await DocumentRepository(db).find("genres") == [{"ID": 1, "Name": "Drama"}]

    @staticmethod
    async def test_reference_sync_crash_does_not_stop_walk(
        db: DatabaseConnection,
        paths: PathsSettings,
        sleep: SleepRecorder,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr(settings.tmdb, "api_key", "")

        async def crash(self) -> None:
            raise RuntimeError("sync crashed")

        monkeypatch.setattr(ReferenceSyncer, "sync_all", crash)
        calls: list[str] = []

        outcome = await init_services(
            on_complete=lambda: calls.append("done"),
            db=db,
            transport=httpx.MockTransport(_provider),
            paths=paths,
            sleep=sleep,
        )

        assert outcome.completed is True
        assert calls == ["done"]
