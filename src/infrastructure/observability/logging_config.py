"""
Structured logging configuration using structlog.

Produces JSON-formatted log lines enriched with timestamps, log levels,
service metadata, and request context bound through ``structlog.contextvars``.
Stdlib loggers (``logging.getLogger(__name__)``) used across the domain and
application layers are routed through the same processor chain.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

# ======================================================================
# Constants
# ======================================================================

SERVICE_NAME: str = "videohub-channels"

_service_name: str = SERVICE_NAME


# ======================================================================
# Custom processors
# ======================================================================


def add_service_name(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Inject the service name into every log event."""
    event_dict.setdefault("service", _service_name)
    return event_dict


# ======================================================================
# Setup
# ======================================================================


def setup_logging(
    log_level: str = "INFO",
    *,
    service_name: str = SERVICE_NAME,
    json_output: bool = True,
) -> None:
    """
    Configure structlog and the stdlib logging bridge.

    Call this once at application startup (FastAPI ``lifespan`` or Celery
    worker init).

    Parameters
    ----------
    log_level:
        Minimum severity level as a string (``DEBUG``, ``INFO``, ``WARNING``,
        ``ERROR``, ``CRITICAL``).
    service_name:
        Value of the ``service`` field on every event.
    json_output:
        Render JSON lines; when false, use the coloured console renderer.
    """
    global _service_name
    _service_name = service_name

    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_service_name,  # type: ignore[list-item]
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(numeric_level)


# ======================================================================
# Logger factory
# ======================================================================


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Return a bound structlog logger pre-populated with the given *name*.

    Additional context can be attached via ``.bind()``::

        log = get_logger("channels")
        log = log.bind(user_id="...")
        log.info("channel_deleted", subscribers=3)
    """
    return structlog.get_logger(name)  # type: ignore[no-any-return]
