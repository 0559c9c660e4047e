"""
Structured JSON request logging middleware.

Every request/response cycle is logged as a single structured event
containing method, path, status code, duration, acting user and a unique
request id.  The request id is also bound into ``structlog.contextvars`` so
every log line emitted while serving the request carries it.
"""

from __future__ import annotations

import time
import uuid
from typing import Any

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

logger: structlog.stdlib.BoundLogger = structlog.get_logger("videohub.request")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs every HTTP request/response with structured fields.

    Captured fields:
        - ``request_id``  -- incoming ``X-Request-ID`` or a fresh UUID
        - ``method``      -- HTTP method
        - ``path``        -- request path
        - ``status_code`` -- response status
        - ``duration_ms`` -- wall-clock duration in milliseconds
        - ``user_id``     -- acting user (``X-User-ID`` / ``X-Admin-ID``)
        - ``client_ip``   -- client IP address
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        start = time.perf_counter()

        try:
            response: Response = await call_next(request)
        except Exception:
            self._log_request(
                request=request,
                status_code=500,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
                level="error",
            )
            raise
        finally:
            structlog.contextvars.unbind_contextvars("request_id")

        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        response.headers["X-Request-ID"] = request_id

        level = "info" if response.status_code < 400 else "warning"
        if response.status_code >= 500:
            level = "error"

        self._log_request(
            request=request,
            status_code=response.status_code,
            duration_ms=duration_ms,
            level=level,
            request_id=request_id,
        )
        return response

    @staticmethod
    def _log_request(
        *,
        request: Request,
        status_code: int,
        duration_ms: float,
        level: str = "info",
        request_id: str | None = None,
    ) -> None:
        event_data: dict[str, Any] = {
            "request_id": request_id or getattr(request.state, "request_id", None),
            "method": request.method,
            "path": str(request.url.path),
            "query": str(request.url.query) if request.url.query else None,
            "status_code": status_code,
            "duration_ms": duration_ms,
            "user_id": request.headers.get("x-user-id") or request.headers.get("x-admin-id"),
            "client_ip": request.client.host if request.client else None,
        }

        log_method = getattr(logger, level, logger.info)
        log_method("http_request", **event_data)
