"""Provider clients: fetch client, showtimes endpoints and TMDB."""

from cinefeed.etl.extractors.client import FetchResponse, HttpFetcher
from cinefeed.etl.extractors.kvikmyndir import ShowtimesEndpoints, decode_items
from cinefeed.etl.extractors.tmdb import (
    TMDBClient,
    TMDBClientError,
    TMDBNotFoundError,
    TMDBRateLimitError,
)

__all__ = [
    "FetchResponse",
    "HttpFetcher",
    "ShowtimesEndpoints",
    "TMDBClient",
    "TMDBClientError",
    "TMDBNotFoundError",
    "TMDBRateLimitError",
    "decode_items",
]
