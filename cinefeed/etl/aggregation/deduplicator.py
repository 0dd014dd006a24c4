"""Showtime schedule deduplication.

The provider repeats time slots inside a theater's schedule;
each schedule is reduced to its unique values before persistence.
"""

import logging
from collections.abc import Hashable, Iterable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class DeduplicationStats:
    """Statistics for one deduplication pass.

    Attributes:
        items: Items visited.
        schedules: Schedules rewritten.
        duplicates_removed: Time slots dropped.
    """

    items: int = 0
    schedules: int = 0
    duplicates_removed: int = 0

    def log_summary(self) -> None:
        """Log deduplication statistics summary."""
        logger.info(
            "Deduplication: %d items, %d schedules, -%d duplicate slots",
            self.items,
            self.schedules,
            self.duplicates_removed,
        )


def unique(values: Iterable[Any]) -> list[Any]:
    """Return values without duplicates, keeping first-seen order.

    Unhashable values (e.g. dict slots) are compared by equality.
    """
    seen: set[Hashable] = set()
    seen_unhashable: list[Any] = []
    result: list[Any] = []

    for value in values:
        if isinstance(value, Hashable):
            if value in seen:
                continue
            seen.add(value)
        else:
            if value in seen_unhashable:
                continue
            seen_unhashable.append(value)
        result.append(value)

    return result


def dedupe_schedules(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Remove duplicate time slots from every showtime schedule.

    Items are modified in place and also returned. Items without
    showtimes, and showtimes without a schedule, are left as-is.

    Args:
        items: Parsed showtime items.

    Returns:
        The same list, deduplicated.
    """
    stats = DeduplicationStats(items=len(items))

    for item in items:
        for showtime in item.get("showtimes") or []:
            schedule = showtime.get("schedule") if isinstance(showtime, dict) else None
            if not schedule:
                continue
            deduped = unique(schedule)
            stats.schedules += 1
            stats.duplicates_removed += len(schedule) - len(deduped)
            showtime["schedule"] = deduped

    stats.log_summary()
    return items
