"""Background Celery tasks for channel deletion and lifecycle maintenance.

Each task drives the async application services with ``asyncio.run`` and
disposes pooled connections afterwards, since every run gets a fresh event
loop.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, Optional, TypeVar
from uuid import UUID

from application.tasks.celery_app import app
from domain.exceptions import DomainException, TransactionConflictError
from domain.models.watch_history import VIDEO_DELETED_REASON
from infrastructure.observability.metrics import (
    channel_deletion_duration_seconds,
    channel_deletions_total,
    outcome_label,
    reason_label,
    subscriptions_cancelled_total,
    tombstones_expired_total,
    watch_history_archived_total,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _run(job: Callable[[Any], Awaitable[T]]) -> T:
    """Run *job(container)* on a fresh loop and release DB connections after."""
    from infrastructure.container import get_container

    container = get_container()

    async def _main() -> T:
        try:
            return await job(container)
        finally:
            await container.dispose()

    return asyncio.run(_main())


@app.task(  # type: ignore[untyped-decorator]
    name="application.tasks.channel_tasks.delete_channel_task",
    bind=True,
    max_retries=5,
    default_retry_delay=5,
)
def delete_channel_task(
    self: Any,
    user_id: str,
    reason: Optional[str] = None,
    deleted_by: Optional[str] = None,
    data_retention: Optional[dict[str, str]] = None,
    watch_history_retention: Optional[str] = None,
) -> dict[str, Any]:
    """Delete a channel out of band; retried when PostgreSQL aborts the transaction."""
    logger.info("Starting async deletion for channel %s", user_id)
    start = time.perf_counter()

    try:
        result = _run(
            lambda c: c.deletion_service.delete_channel(
                UUID(user_id),
                reason,
                UUID(deleted_by) if deleted_by else None,
                data_retention=data_retention,
                watch_history_retention=watch_history_retention,
            )
        )
    except TransactionConflictError as exc:
        channel_deletions_total.labels(outcome="conflict", reason=reason_label(reason)).inc()
        logger.warning("Deletion of %s conflicted, retrying", user_id)
        raise self.retry(exc=exc) from exc
    except DomainException as exc:
        channel_deletions_total.labels(
            outcome=outcome_label(exc), reason=reason_label(reason)
        ).inc()
        logger.error("Deletion of %s rejected: %s", user_id, exc.detail)
        raise

    channel_deletion_duration_seconds.observe(time.perf_counter() - start)
    channel_deletions_total.labels(outcome="success", reason=reason_label(reason)).inc()
    subscriptions_cancelled_total.inc(result.stats.subscriber_count)

    logger.info("Async deletion complete for channel %s", user_id)
    return {
        "user_id": user_id,
        "tombstone_id": str(result.tombstone_id),
        "status": "deleted",
    }


@app.task(  # type: ignore[untyped-decorator]
    name="application.tasks.channel_tasks.expire_tombstones_task",
    bind=True,
    max_retries=3,
    default_retry_delay=60,
)
def expire_tombstones_task(self: Any) -> dict[str, int]:
    """Close overdue recovery windows, then purge tombstones already closed."""

    async def _sweep(container: Any) -> dict[str, int]:
        expired = await container.recovery_service.expire_overdue_tombstones()
        purged = await container.recovery_service.purge_expired_tombstones()
        return {"expired": expired, "purged": purged}

    try:
        outcome = _run(_sweep)
    except Exception as exc:
        logger.exception("Tombstone sweep failed")
        raise self.retry(exc=exc) from exc

    tombstones_expired_total.inc(outcome["expired"])
    return outcome


@app.task(  # type: ignore[untyped-decorator]
    name="application.tasks.channel_tasks.cleanup_deleted_videos_task",
    bind=True,
    max_retries=3,
    default_retry_delay=300,
)
def cleanup_deleted_videos_task(self: Any) -> dict[str, int]:
    """Archive watch history that points at videos which no longer exist."""
    try:
        archived = _run(lambda c: c.watch_history_service.cleanup_deleted_videos())
    except Exception as exc:
        logger.exception("Deleted-video cleanup failed")
        raise self.retry(exc=exc) from exc

    watch_history_archived_total.labels(reason=VIDEO_DELETED_REASON).inc(archived)
    return {"archived": archived}
