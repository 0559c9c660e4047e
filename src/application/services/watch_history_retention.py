"""Apply the watch-history retention policy for a deleted channel.

Two sets of records are affected: history the deleted user accumulated as a
viewer, and history of anyone watching the deleted channel's videos.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import Optional
from uuid import UUID

from application.ports import TransactionContext
from domain.models import RetentionAction
from domain.models.watch_history import CHANNEL_DELETED_REASON

logger = logging.getLogger(__name__)


class WatchHistoryRetentionProcessor:
    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or (lambda: datetime.now(UTC))

    async def handle_watch_history(
        self,
        uow: TransactionContext,
        user_id: UUID,
        video_ids: Sequence[UUID],
        action: RetentionAction,
        tombstone_id: Optional[UUID] = None,
    ) -> int:
        store = uow.watch_history
        affected = 0

        if action is RetentionAction.DELETED:
            affected += await store.delete_by_user(user_id)
            if video_ids:
                affected += await store.delete_by_videos(video_ids)

        elif action is RetentionAction.ANONYMIZED:
            affected += await store.anonymize_by_user(user_id)
            if video_ids:
                affected += await store.anonymize_by_videos(video_ids)

        else:
            now = self._clock()
            affected += await store.archive_by_user(
                user_id, reason=CHANNEL_DELETED_REASON, tombstone_id=tombstone_id, at=now
            )
            if video_ids:
                affected += await store.archive_by_videos(
                    video_ids,
                    reason=CHANNEL_DELETED_REASON,
                    tombstone_id=tombstone_id,
                    at=now,
                )

        logger.info(
            "Watch history for channel %s processed with policy %s: %d records",
            user_id,
            action.value,
            affected,
        )
        return affected
