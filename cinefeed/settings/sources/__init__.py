"""Data source settings.

Exports configuration classes for both providers:
- Showtimes API (primary, REST)
- TMDB API (enrichment, REST)
"""

from cinefeed.settings.sources.kvikmyndir import ShowtimesSettings
from cinefeed.settings.sources.tmdb import TMDBSettings

__all__ = [
    "ShowtimesSettings",
    "TMDBSettings",
]
