"""Aggregation module for showtime items.

Deduplicates provider schedules and merges TMDB metadata into
items before they are persisted.

Example:
    >>> from cinefeed.etl.aggregation import dedupe_schedules
    >>> items = dedupe_schedules(items)
"""

from cinefeed.etl.aggregation.deduplicator import (
    DeduplicationStats,
    dedupe_schedules,
    unique,
)
from cinefeed.etl.aggregation.merger import ExtraDataMerger, MergeStats, imdb_id_of

__all__ = [
    # Deduplication
    "DeduplicationStats",
    "dedupe_schedules",
    "unique",
    # Enrichment
    "ExtraDataMerger",
    "MergeStats",
    "imdb_id_of",
]
