"""Prometheus instrumentation for the reporting API.

Counts and times requests per route template (not raw path, so
query strings and ids do not explode label cardinality) and serves
every registered metric, fetch latencies included, on /metrics.
"""

import time

from fastapi import FastAPI
from prometheus_client import Counter, Gauge, Histogram, make_asgi_app
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Match

METRICS_PATH = "/metrics"

HTTP_REQUESTS_TOTAL = Counter(
    "cinefeed_http_requests_total",
    "Total API requests",
    ["method", "route", "status"],
)

HTTP_REQUEST_DURATION = Histogram(
    "cinefeed_http_request_duration_seconds",
    "API request duration in seconds",
    ["method", "route"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

HTTP_REQUESTS_IN_PROGRESS = Gauge(
    "cinefeed_http_requests_in_progress",
    "API requests currently being served",
    ["method"],
)


def route_label(request: Request) -> str:
    """Route template matched by the request, or its raw path."""
    route = request.scope.get("route")
    if route is None:
        for candidate in request.app.routes:
            match, _ = candidate.matches(request.scope)
            if match == Match.FULL:
                route = candidate
                break
    return getattr(route, "path", None) or request.url.path


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Records request count, latency and concurrency.

    Requests to the metrics endpoint itself are not recorded.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path.startswith(METRICS_PATH):
            return await call_next(request)

        method = request.method
        in_progress = HTTP_REQUESTS_IN_PROGRESS.labels(method=method)
        in_progress.inc()
        start = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            in_progress.dec()

        route = route_label(request)
        HTTP_REQUESTS_TOTAL.labels(method=method, route=route, status=str(response.status_code)).inc()
        HTTP_REQUEST_DURATION.labels(method=method, route=route).observe(time.perf_counter() - start)
        return response


def mount_metrics(app: FastAPI) -> None:
    """Serve Prometheus text exposition on /metrics.

    The mounted sub-app bypasses FastAPI routing and dependencies.
    """
    app.mount(METRICS_PATH, make_asgi_app())
