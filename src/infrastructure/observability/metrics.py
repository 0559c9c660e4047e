"""
Prometheus metrics definitions and FastAPI instrumentation.

Defines the channel-lifecycle metrics and provides a ``setup_metrics``
function that wires automatic request tracking into a FastAPI application.
Lifecycle metrics are recorded at the edges (API routers, Celery tasks),
never inside the application services.
"""

from __future__ import annotations

import time

from fastapi import FastAPI, Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response as StarletteResponse

from domain.exceptions import InvalidDeletionReasonError
from domain.models.retention import DeletionReason, parse_deletion_reason


# ======================================================================
# HTTP metrics
# ======================================================================

api_requests_total = Counter(
    "api_requests_total",
    "Total number of API requests",
    labelnames=["method", "endpoint", "status"],
    registry=REGISTRY,
)

api_request_duration_seconds = Histogram(
    "api_request_duration_seconds",
    "Request latency in seconds",
    labelnames=["method", "endpoint"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
    registry=REGISTRY,
)


# ======================================================================
# Channel lifecycle metrics
# ======================================================================

channel_deletions_total = Counter(
    "channel_deletions_total",
    "Channel deletion attempts by outcome",
    labelnames=["outcome", "reason"],
    registry=REGISTRY,
)

channel_recoveries_total = Counter(
    "channel_recoveries_total",
    "Channel recovery attempts by outcome",
    labelnames=["outcome"],
    registry=REGISTRY,
)

subscriptions_cancelled_total = Counter(
    "subscriptions_cancelled_total",
    "Subscriptions cancelled by channel deletions",
    registry=REGISTRY,
)

channel_deletion_duration_seconds = Histogram(
    "channel_deletion_duration_seconds",
    "Wall-clock duration of a channel deletion transaction",
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
    registry=REGISTRY,
)

tombstones_expired_total = Counter(
    "tombstones_expired_total",
    "Tombstones whose recovery window was closed by the sweep",
    registry=REGISTRY,
)

watch_history_archived_total = Counter(
    "watch_history_archived_total",
    "Watch-history records archived by maintenance jobs",
    labelnames=["reason"],
    registry=REGISTRY,
)


def outcome_label(exc: BaseException | None) -> str:
    """Map an exception (or success) to a bounded-cardinality outcome label."""
    if exc is None:
        return "success"
    status = getattr(exc, "status_code", 500)
    if status < 500:
        return type(exc).__name__
    return "error"


def reason_label(reason: str | None, default: DeletionReason = DeletionReason.USER_REQUEST) -> str:
    """Known deletion reason value, or ``"invalid"`` for anything unparseable."""
    if reason is None:
        return default.value
    try:
        return parse_deletion_reason(reason).value
    except InvalidDeletionReasonError:
        return "invalid"


# ======================================================================
# Middleware for automatic request instrumentation
# ======================================================================

class PrometheusMiddleware(BaseHTTPMiddleware):
    """Middleware that records request count and latency per endpoint."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        method = request.method
        start = time.perf_counter()
        response: Response = await call_next(request)
        duration = time.perf_counter() - start

        # The route is resolved during call_next, so read the template after.
        endpoint = self._get_path_template(request)

        api_requests_total.labels(
            method=method,
            endpoint=endpoint,
            status=str(response.status_code),
        ).inc()
        api_request_duration_seconds.labels(
            method=method,
            endpoint=endpoint,
        ).observe(duration)

        return response

    @staticmethod
    def _get_path_template(request: Request) -> str:
        """
        Resolve the route template (e.g. ``/channels/recover/{tombstone_id}``)
        so that label cardinality stays bounded.
        """
        route = request.scope.get("route")
        if route and hasattr(route, "path"):
            return route.path
        return request.url.path


# ======================================================================
# Setup helper
# ======================================================================

def setup_metrics(app: FastAPI) -> None:
    """
    Instrument a FastAPI application with Prometheus metrics.

    * Adds the ``PrometheusMiddleware`` for automatic request tracking.
    * Registers a ``/metrics`` endpoint that serves the Prometheus
      exposition format.
    """

    app.add_middleware(PrometheusMiddleware)

    @app.get("/metrics", include_in_schema=False)
    async def metrics_endpoint() -> StarletteResponse:
        return StarletteResponse(
            content=generate_latest(REGISTRY),
            media_type=CONTENT_TYPE_LATEST,
        )
