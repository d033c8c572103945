from __future__ import annotations

import logging
import time

from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger("walkin.api.access")

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ["method", "route", "status_code"],
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "route"],
)

# Probed every few seconds by the orchestrator and the scraper; counted, not logged.
PROBE_ROUTES = frozenset({"/health/live", "/health/ready", "/metrics"})


def route_template(request: Request) -> str:
    """Matched route path, so per-order URLs share one metrics series."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


def _observe(method: str, route: str, status_code: int, started: float) -> float:
    duration_seconds = time.perf_counter() - started
    REQUEST_COUNT.labels(method=method, route=route, status_code=str(status_code)).inc()
    REQUEST_LATENCY.labels(method=method, route=route).observe(duration_seconds)
    return round(duration_seconds * 1000, 2)


class AccessLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        method = request.method
        try:
            response = await call_next(request)
        except Exception:
            duration_ms = _observe(method, route_template(request), 500, started)
            logger.exception(
                "request_error",
                extra={
                    "method": method,
                    "path": request.url.path,
                    "status_code": 500,
                    "duration_ms": duration_ms,
                },
            )
            raise

        route = route_template(request)
        duration_ms = _observe(method, route, response.status_code, started)
        if route not in PROBE_ROUTES:
            logger.info(
                "request_complete",
                extra={
                    "method": method,
                    "path": request.url.path,
                    "route": route,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                },
            )
        return response
