"""API routers."""

from cinefeed.api.routers import analytics

__all__ = ["analytics"]
