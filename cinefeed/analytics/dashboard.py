"""Usage dashboard assembly.

Runs the three usage queries concurrently and joins their results;
a failing query is reported in ``errors`` while the others still
populate the dashboard.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from cinefeed.analytics.usage import EndpointStats, UsageService, UserStats
from cinefeed.etl.utils.logger import setup_logger

logger = setup_logger("cinefeed.analytics.dashboard")

DEFAULT_PERIOD = "all"
RECENT_EVENTS_LIMIT = 50

PERIODS: dict[str, timedelta | None] = {
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "all": None,
}


@dataclass
class DashboardData:
    """Joined usage statistics for one period."""

    period: str
    user_stats: list[UserStats] = field(default_factory=list)
    endpoint_stats: list[EndpointStats] = field(default_factory=list)
    recent_events: list[dict[str, Any]] = field(default_factory=list)
    total_calls: int = 0
    total_users: int = 0
    total_endpoints: int = 0
    errors: list[str] = field(default_factory=list)


def resolve_period(
    period: str | None,
    now: datetime | None = None,
) -> tuple[str, datetime | None, datetime | None]:
    """Map a period name to a time range.

    Unknown or missing periods fall back to 'all' (unbounded).

    Returns:
        (period, start_date, end_date)
    """
    if period not in PERIODS:
        period = DEFAULT_PERIOD

    window = PERIODS[period]
    if window is None:
        return period, None, None

    end = now or datetime.now(timezone.utc)
    return period, end - window, end


async def build_dashboard(
    service: UsageService,
    period: str | None = DEFAULT_PERIOD,
    now: datetime | None = None,
    recent_limit: int = RECENT_EVENTS_LIMIT,
) -> DashboardData:
    """Collect user, endpoint and recent-event statistics.

    Args:
        service: Usage service to query.
        period: One of 24h, 7d, 30d, all.
        now: Reference time for the period window.
        recent_limit: Number of recent events kept.

    Returns:
        DashboardData; failed queries leave their section empty and
        add a message to errors.
    """
    period, start, end = resolve_period(period, now)

    user_res, endpoint_res, events_res = await asyncio.gather(
        service.stats_by_user(start, end),
        service.stats_by_endpoint(start, end),
        service.recent_events(start, end),
        return_exceptions=True,
    )

    errors: list[str] = []
    user_stats = _unwrap(user_res, "user stats", errors)
    endpoint_stats = _unwrap(endpoint_res, "endpoint stats", errors)
    events = _unwrap(events_res, "recent logs", errors)

    recent = sorted(events, key=lambda e: e["timestamp"], reverse=True)[:recent_limit]

    return DashboardData(
        period=period,
        user_stats=user_stats,
        endpoint_stats=endpoint_stats,
        recent_events=recent,
        total_calls=sum(stat["total_calls"] for stat in user_stats),
        total_users=len(user_stats),
        total_endpoints=len(endpoint_stats),
        errors=errors,
    )


def _unwrap(result: Any, label: str, errors: list[str]) -> list[Any]:
    """Return a gathered result, or [] after recording its error."""
    if isinstance(result, Exception):
        message = f"Error fetching {label}: {result}"
        logger.error(message)
        errors.append(message)
        return []
    if isinstance(result, BaseException):
        raise result
    return list(result or [])
