"""API usage analytics: event logging, aggregation and dashboard."""

from cinefeed.analytics.dashboard import (
    PERIODS,
    DashboardData,
    build_dashboard,
    resolve_period,
)
from cinefeed.analytics.usage import EndpointStats, UsageService, UserStats

__all__ = [
    "PERIODS",
    "DashboardData",
    "EndpointStats",
    "UsageService",
    "UserStats",
    "build_dashboard",
    "resolve_period",
]
