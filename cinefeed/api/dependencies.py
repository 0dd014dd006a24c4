"""FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends

from cinefeed.analytics.usage import UsageService
from cinefeed.database.connection import get_database


def get_usage_service() -> UsageService:
    """Usage service bound to the shared database connection."""
    return UsageService(get_database())


UsageServiceDep = Annotated[UsageService, Depends(get_usage_service)]
