"""FastAPI application entry point.

Creates the cinefeed reporting API: usage logging, the
analytics dashboard and Prometheus metrics.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from cinefeed.api.routers import analytics
from cinefeed.api.schemas import HealthResponse
from cinefeed.database.connection import close_database, get_database
from cinefeed.etl.utils.logger import setup_logger
from cinefeed.monitoring.middleware import PrometheusMiddleware, mount_metrics
from cinefeed.settings import settings

logger = setup_logger("cinefeed.api")

# =============================================================================
# LIFESPAN
# =============================================================================


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Create tables on startup and release the engine on shutdown.

    Args:
        _app: FastAPI application instance.

    Yields:
        None after startup tasks complete.
    """
    db = get_database()
    await db.create_all()
    logger.info("Database ready")
    yield
    await close_database()


# =============================================================================
# APPLICATION FACTORY
# =============================================================================


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Returns:
        Configured FastAPI instance.
    """
    app = FastAPI(
        title=settings.api.title,
        version=settings.api.version,
        description="Usage analytics for the cinefeed showtimes API",
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )
    app.add_middleware(PrometheusMiddleware)
    mount_metrics(app)
    app.include_router(analytics.router, prefix="/api/v1")
    app.add_api_route(
        "/api/v1/health",
        health_check,
        methods=["GET"],
        response_model=HealthResponse,
        tags=["Health"],
        summary="Health check",
    )
    return app


async def health_check() -> HealthResponse:
    """Report API version and database reachability."""
    connected = await get_database().check_connection()
    return HealthResponse(
        status="healthy" if connected else "degraded",
        version=settings.api.version,
        database=connected,
    )


app = create_app()


# =============================================================================
# CLI ENTRY POINT
# =============================================================================


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "cinefeed.api.main:app",
        host=settings.api.host,
        port=settings.api.port,
        reload=settings.api.reload,
    )
