"""ETL data types.

TypedDict definitions for provider payloads and pipeline results.
Provider items carry many more fields than listed here; only the
fields the pipeline reads are declared.
"""

from dataclasses import dataclass, field
from typing import Any, NotRequired, TypedDict


class Showtime(TypedDict):
    """Screenings of one movie in one theater."""

    cinema: NotRequired[Any]
    schedule: NotRequired[list[Any]]


class TMDBMetadata(TypedDict):
    """Metadata merged in from TMDB."""

    id: int
    poster: str | None
    backdrop: str | None
    vote_average: NotRequired[float]
    overview: NotRequired[str]


class ShowtimeItem(TypedDict):
    """One movie with its screenings for a single day offset."""

    id: int | str
    title: str
    showtimes: NotRequired[list[Showtime]]
    imdbid: NotRequired[str]
    ids: NotRequired[dict[str, Any]]
    tmdb: NotRequired[TMDBMetadata]


class ExtraImagesDocument(TypedDict):
    """Auxiliary per-item images keyed by IMDb id."""

    imdbid: str
    tmdb_id: int
    images: list[str]


# Reference records are flat provider dicts (genres, theaters).
ReferenceRecord = dict[str, Any]


@dataclass
class WalkOutcome:
    """Result of a day-walk run.

    Attributes:
        completed: True when the upcoming stage finished.
        days_ingested: Offsets whose collection was refreshed.
        halted_at: Offset where the walk stopped on an error, if any.
        errors: Logged error messages.
    """

    completed: bool = False
    days_ingested: list[int] = field(default_factory=list)
    halted_at: int | None = None
    errors: list[str] = field(default_factory=list)


@dataclass
class SyncResult:
    """Result of one reference-data flow."""

    collection: str
    success: bool
    count: int = 0
    error: str | None = None
