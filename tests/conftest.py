"""Shared pytest fixtures: SQLite store, isolated paths and provider settings."""

from pathlib import Path

import pytest

from cinefeed.database.connection import DatabaseConnection
from cinefeed.database.repositories import DocumentRepository
from cinefeed.etl.extractors.kvikmyndir import ShowtimesEndpoints
from cinefeed.settings import PathsSettings, ShowtimesSettings, TMDBSettings

BASE_URL = "https://api.showtimes.test"


@pytest.fixture
async def db(tmp_path: Path) -> DatabaseConnection:
    """File-backed SQLite database with all tables created."""
    database = DatabaseConnection(f"sqlite+aiosqlite:///{tmp_path / 'cinefeed.db'}", echo=False)
    await database.create_all()
    yield database
    await database.dispose()


@pytest.fixture
def repository(db: DatabaseConnection) -> DocumentRepository:
    return DocumentRepository(db, imdb_keyed={"extraimages"})


@pytest.fixture
def paths(tmp_path: Path) -> PathsSettings:
    """Snapshots and posters under tmp_path."""
    return PathsSettings(CINEFEED_DATA_DIR=str(tmp_path / "data"))


@pytest.fixture
def showtimes_cfg() -> ShowtimesSettings:
    return ShowtimesSettings(
        SHOWTIMES_BASE_URL=BASE_URL,
        SHOWTIMES_API_KEY="test-key",
        SHOWTIMES_STEP_DELAY=10.0,
        SHOWTIMES_MAX_DAYS=4,
    )


@pytest.fixture
def endpoints(showtimes_cfg: ShowtimesSettings) -> ShowtimesEndpoints:
    return ShowtimesEndpoints(showtimes_cfg)


@pytest.fixture
def tmdb_off() -> TMDBSettings:
    """TMDB settings without an API key (enrichment disabled)."""
    return TMDBSettings(TMDB_API_KEY="")


@pytest.fixture
def tmdb_on() -> TMDBSettings:
    return TMDBSettings(
        TMDB_API_KEY="tmdb-key",
        TMDB_IMAGE_BASE_URL="https://img.test",
        TMDB_MAX_EXTRA_IMAGES=3,
    )
