"""Pydantic schemas for API request/response validation.

Defines data transfer objects for usage logging and the
analytics dashboard.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# HEALTH
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str = Field(examples=["healthy"])
    version: str = Field(examples=["1.0.0"])
    database: bool = False


# =============================================================================
# USAGE EVENTS
# =============================================================================


class UsageEventRequest(BaseModel):
    """Usage event submitted by an API consumer."""

    endpoint: str = Field(min_length=1, max_length=500, examples=["/movies"])
    username: str = Field(min_length=1, max_length=255, examples=["alice"])
    timestamp: datetime
    user_id: str | None = None
    status_code: int = Field(default=200, ge=100, le=599)
    method: str = Field(default="GET", max_length=10)
    query_params: dict[str, Any] = Field(default_factory=dict)


class UsageEventCreated(BaseModel):
    """Id of the stored usage event."""

    id: int


class UsageEventResponse(BaseModel):
    """Stored usage event."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    endpoint: str
    username: str
    user_id: str | None = None
    status_code: int
    method: str
    query_params: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime
    created_at: datetime | None = None


# =============================================================================
# ANALYTICS
# =============================================================================


class UserStatsResponse(BaseModel):
    """Usage of one username."""

    username: str
    total_calls: int
    last_call: datetime | None = None


class EndpointStatsResponse(BaseModel):
    """Usage of one endpoint."""

    endpoint: str
    total_calls: int
    last_call: datetime | None = None


class DashboardResponse(BaseModel):
    """Analytics dashboard for one period."""

    model_config = ConfigDict(from_attributes=True)

    period: Literal["24h", "7d", "30d", "all"]
    user_stats: list[UserStatsResponse] = Field(default_factory=list)
    endpoint_stats: list[EndpointStatsResponse] = Field(default_factory=list)
    recent_events: list[UsageEventResponse] = Field(default_factory=list)
    total_calls: int = 0
    total_users: int = 0
    total_endpoints: int = 0
    errors: list[str] = Field(default_factory=list)
