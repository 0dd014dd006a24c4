"""Ingestion pipeline: day-walk orchestration and reference sync."""

from cinefeed.etl.pipeline.orchestrator import DayWalker, WalkState, init_services
from cinefeed.etl.pipeline.reference import (
    GENRES_COLLECTION,
    THEATERS_COLLECTION,
    ReferenceSyncer,
)

__all__ = [
    "GENRES_COLLECTION",
    "THEATERS_COLLECTION",
    "DayWalker",
    "ReferenceSyncer",
    "WalkState",
    "init_services",
]
