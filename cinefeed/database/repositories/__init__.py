"""Repositories for cinefeed persistence.

Classes:
    DocumentRepository: Natural-key upserts and replacements of collections.
    UsageRepository: Append and aggregate API usage events.
"""

from cinefeed.database.repositories.documents import (
    DocumentRepository,
    NaturalKey,
    UpsertResult,
)
from cinefeed.database.repositories.usage import UsageRepository, UsageSummaryData

__all__ = [
    "DocumentRepository",
    "NaturalKey",
    "UpsertResult",
    "UsageRepository",
    "UsageSummaryData",
]
