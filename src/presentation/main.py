"""FastAPI application factory for the channel lifecycle service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from domain.exceptions import DomainException
from infrastructure.container import get_container
from infrastructure.observability.logging_config import setup_logging
from infrastructure.observability.metrics import setup_metrics
from infrastructure.settings import get_settings

from .api.v1 import channels, watch_history
from .middleware.request_logging import RequestLoggingMiddleware

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()
    setup_logging(
        settings.log_level,
        service_name=settings.service_name,
        json_output=settings.log_json,
    )
    container = get_container()
    app.state.container = container
    yield
    await container.dispose()


# ---------------------------------------------------------------------------
# Exception handlers (RFC 9457 Problem Details)
# ---------------------------------------------------------------------------


def _problem_json(
    status_code: int,
    title: str,
    detail: str,
    *,
    error_type: str = "about:blank",
    instance: str | None = None,
    errors: list[dict[str, Any]] | None = None,
) -> JSONResponse:
    body: dict[str, Any] = {
        "type": error_type,
        "title": title,
        "status": status_code,
        "detail": detail,
    }
    if instance:
        body["instance"] = instance
    if errors:
        body["errors"] = errors
    return JSONResponse(
        status_code=status_code,
        content=body,
        media_type="application/problem+json",
    )


async def _domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s: %s", exc.title, exc.detail, exc_info=exc)
    return _problem_json(
        status_code=exc.status_code,
        title=exc.title,
        detail=exc.detail,
        error_type=exc.error_type,
        instance=str(request.url.path),
    )


async def _validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = []
    for err in exc.errors():
        errors.append(
            {
                "field": " -> ".join(str(loc) for loc in err.get("loc", [])),
                "message": err.get("msg", ""),
                "type": err.get("type", ""),
            }
        )
    return _problem_json(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        title="Validation Error",
        detail="The request body or parameters failed validation.",
        error_type="https://api.videohub.example/problems/validation-error",
        instance=str(request.url.path),
        errors=errors,
    )


async def _generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s", request.url.path)
    return _problem_json(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        title="Internal Server Error",
        detail="An unexpected error occurred. Please try again later.",
        instance=str(request.url.path),
    )


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

API_V1_PREFIX = "/api/v1"


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="VideoHub Channel Lifecycle API",
        version=APP_VERSION,
        description=(
            "Channel deletion with per-content retention policies, "
            "subscription fan-out, time-boxed recovery and watch-history "
            "management."
        ),
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=_lifespan,
    )

    # -- CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.cors_origins.split(",")],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    # -- Custom middleware
    app.add_middleware(RequestLoggingMiddleware)
    setup_metrics(app)

    # -- API routers
    app.include_router(channels.router, prefix=API_V1_PREFIX)
    app.include_router(watch_history.router, prefix=API_V1_PREFIX)

    # -- Exception handlers
    app.add_exception_handler(DomainException, _domain_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)

    @app.get("/health", tags=["Operations"], summary="Health check", response_model=dict)
    async def health_check() -> dict[str, Any]:
        return {
            "status": "healthy",
            "version": APP_VERSION,
            "timestamp": datetime.now(UTC).isoformat(),
        }

    return app


app = create_app()
