"""Prometheus metrics for the application."""

import time
import uuid

from prometheus_client import Counter, Histogram, Info, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# --- Metrics ---

APP_INFO = Info("app", "Rank Monitor application info")
APP_INFO.info({"version": "1.0.0", "name": "rank_monitor"})

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30],
)

RANK_CHECKS = Counter(
    "rank_checks_total",
    "Keyword position checks by source and outcome",
    ["source", "status"],  # status: found / not_found / error
)

RANK_NOTIFICATIONS = Counter(
    "rank_notifications_total",
    "Ranking change notifications created",
    ["priority"],
)

RANK_SYNC_RUNS = Counter(
    "rank_sync_runs_total",
    "Ranking sync runs",
    ["status"],  # success / failed
)


# --- Middleware ---


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


def _normalize_path(path: str) -> str:
    """Replace UUID / numeric segments with {id} to avoid high cardinality."""
    parts = path.split("/")
    return "/".join("{id}" if part and (part.isdigit() or _is_uuid(part)) else part for part in parts)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Collect HTTP request metrics for Prometheus."""

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        path = _normalize_path(request.url.path)

        start = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start

        REQUEST_COUNT.labels(method=method, path=path, status=response.status_code).inc()
        REQUEST_DURATION.labels(method=method, path=path).observe(duration)

        return response


def metrics_response() -> Response:
    """Generate Prometheus /metrics response."""
    return Response(
        content=generate_latest(),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
