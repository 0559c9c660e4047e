"""Celery application configuration for the channel lifecycle service.

Sets up the broker (Redis), result backend, serialisation, task routing,
retry policies and the periodic maintenance schedule.
"""

from __future__ import annotations

import logging
from typing import Any

from celery import Celery
from celery.signals import worker_init

from infrastructure.settings import get_settings

logger = logging.getLogger(__name__)

_settings = get_settings()

app = Celery("videohub_channels", include=["application.tasks.channel_tasks"])

# ---------------------------------------------------------------------------
# Broker and result backend
# ---------------------------------------------------------------------------

app.conf.broker_url = _settings.celery_broker_url
app.conf.result_backend = _settings.celery_result_backend

# ---------------------------------------------------------------------------
# Serialisation
# ---------------------------------------------------------------------------

app.conf.accept_content = ["json"]
app.conf.task_serializer = "json"
app.conf.result_serializer = "json"

# ---------------------------------------------------------------------------
# Task routing
# ---------------------------------------------------------------------------

app.conf.task_routes = {
    "application.tasks.channel_tasks.delete_channel_task": {"queue": "channels"},
    "application.tasks.channel_tasks.*": {"queue": "maintenance"},
}

# ---------------------------------------------------------------------------
# Default retry policy
# ---------------------------------------------------------------------------

app.conf.task_annotations = {
    "*": {
        "max_retries": 3,
        "default_retry_delay": 60,
        "retry_backoff": True,
        "retry_backoff_max": 600,
        "retry_jitter": True,
    },
}

# ---------------------------------------------------------------------------
# Periodic maintenance
# ---------------------------------------------------------------------------

app.conf.beat_schedule = {
    "expire-tombstones": {
        "task": "application.tasks.channel_tasks.expire_tombstones_task",
        "schedule": float(_settings.tombstone_sweep_interval_seconds),
    },
    "cleanup-deleted-videos": {
        "task": "application.tasks.channel_tasks.cleanup_deleted_videos_task",
        "schedule": float(_settings.video_cleanup_interval_seconds),
    },
}

# ---------------------------------------------------------------------------
# Miscellaneous
# ---------------------------------------------------------------------------

app.conf.task_acks_late = True
app.conf.worker_prefetch_multiplier = 1
app.conf.task_track_started = True
app.conf.task_time_limit = 3600  # hard limit: 1 hour
app.conf.task_soft_time_limit = 3300  # soft limit: 55 minutes
app.conf.timezone = "UTC"


@worker_init.connect
def warn_on_private_storage(**_: Any) -> None:
    """An in-memory backend is private to this worker process."""
    backend = get_settings().storage_backend.lower()
    if backend == "memory":
        logger.warning(
            "Celery worker started with APP_STORAGE_BACKEND=memory; tasks will not "
            "see data written by the API. Set APP_STORAGE_BACKEND=postgres."
        )
