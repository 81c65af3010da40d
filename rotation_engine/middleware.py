# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
HTTP Middleware: request ID propagation and Prometheus metrics.
"""

import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from rotation_engine.metrics.prometheus import REQUEST_COUNT, REQUEST_LATENCY, HTTP_ERRORS

# Static path segments; anything else (execution / alert ids) collapses to {param}
KNOWN_SEGMENTS: frozenset[str] = frozenset({
    "api", "v1", "schedules", "validate", "timeline", "starting-stations",
    "executions", "start", "pause", "resume", "emergency-stop", "alerts",
    "acknowledge", "sessions", "history", "stats",
})

UNMETERED_PATHS: tuple[str, ...] = (
    "/health", "/health/ready", "/metrics", "/openapi.json", "/docs", "/redoc",
)


def endpoint_label(request: Request) -> str:
    """Low-cardinality endpoint label: the matched route template when known."""
    route = request.scope.get("route")
    if route is not None and getattr(route, "path", None):
        return route.path
    parts = [p for p in request.url.path.split("/") if p]
    return "/" + "/".join(p if p in KNOWN_SEGMENTS else "{param}" for p in parts)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Reuse the caller's X-Request-ID or mint one, and echo it back."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class MetricsMiddleware(BaseHTTPMiddleware):
    """Request count, latency and error responses per endpoint."""

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started

        if request.url.path in UNMETERED_PATHS:
            return response

        endpoint = endpoint_label(request)
        status = str(response.status_code)
        REQUEST_COUNT.labels(method=request.method, endpoint=endpoint, status=status).inc()
        REQUEST_LATENCY.labels(method=request.method, endpoint=endpoint).observe(elapsed)
        if response.status_code >= 400:
            HTTP_ERRORS.labels(method=request.method, endpoint=endpoint, status=status).inc()
        return response
