"""Analytics endpoints for REST API.

Provides usage event logging and the usage dashboard.
"""

from dataclasses import asdict
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status

from cinefeed.analytics.dashboard import DEFAULT_PERIOD, build_dashboard
from cinefeed.api.dependencies import UsageServiceDep
from cinefeed.api.schemas import DashboardResponse, UsageEventCreated, UsageEventRequest
from cinefeed.exceptions import UsageValidationError
from cinefeed.settings import settings

router = APIRouter(tags=["Analytics"])


@router.get(
    "/analytics",
    response_model=DashboardResponse,
    summary="Usage dashboard",
    description="Per-user and per-endpoint usage with the most recent events.",
)
async def get_analytics(
    service: UsageServiceDep,
    period: Annotated[str, Query(description="24h, 7d, 30d or all")] = DEFAULT_PERIOD,
) -> DashboardResponse:
    """Build the dashboard for a period.

    Args:
        service: Usage service.
        period: Time window; unknown values fall back to 'all'.

    Returns:
        Dashboard data, with query failures listed in errors.
    """
    data = await build_dashboard(
        service,
        period,
        recent_limit=settings.api.recent_events_limit,
    )
    return DashboardResponse.model_validate(asdict(data))


@router.post(
    "/usage",
    response_model=UsageEventCreated,
    status_code=status.HTTP_201_CREATED,
    summary="Log usage event",
    description="Append one API usage event.",
)
async def log_usage(request: UsageEventRequest, service: UsageServiceDep) -> UsageEventCreated:
    """Store a usage event.

    Raises:
        HTTPException: 422 if a required field is blank.
    """
    try:
        event_id = await service.log_usage(**request.model_dump())
    except UsageValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        ) from e
    return UsageEventCreated(id=event_id)
