"""Channel deletion orchestrator.

Sequences the snapshot, tombstone and per-collection retention steps inside
one unit of work, then removes the user record. Either every mutation of a
``delete_channel`` call commits or none does.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Optional
from uuid import UUID

from application.ports import TransactionContext, UnitOfWork
from application.schemas.pagination import PaginatedResponse, PaginationParams
from application.services.content_retention import ContentRetentionProcessor
from application.services.subscription_fanout import SubscriptionFanoutProcessor
from application.services.watch_history_retention import WatchHistoryRetentionProcessor
from domain.exceptions import (
    ChannelDeletionFailedError,
    ChannelNotFoundError,
    DomainException,
)
from domain.models import (
    ChannelStats,
    ChannelTombstone,
    ContentRef,
    DataRetentionPolicy,
    DeletionStats,
    EngagementType,
    OwnedContent,
    User,
)
from domain.models.retention import DeletionReason, parse_deletion_reason
from domain.models.tombstone import RECOVERY_WINDOW

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeletionResult:
    success: bool
    tombstone_id: UUID
    stats: ChannelStats


class ChannelDeletionOrchestrator:
    """Deletes a channel and applies retention policy to everything it touched."""

    def __init__(
        self,
        uow: UnitOfWork,
        subscription_processor: SubscriptionFanoutProcessor | None = None,
        content_processor: ContentRetentionProcessor | None = None,
        watch_history_processor: WatchHistoryRetentionProcessor | None = None,
        recovery_window: timedelta = RECOVERY_WINDOW,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._uow = uow
        self._subscriptions = subscription_processor or SubscriptionFanoutProcessor()
        self._content = content_processor or ContentRetentionProcessor()
        self._watch_history = watch_history_processor or WatchHistoryRetentionProcessor()
        self._recovery_window = recovery_window
        self._clock = clock or (lambda: datetime.now(UTC))

    # -- public API -------------------------------------------------------

    async def delete_channel(
        self,
        user_id: UUID,
        reason: DeletionReason | str | None = DeletionReason.USER_REQUEST,
        deleted_by: Optional[UUID] = None,
        *,
        data_retention: Optional[Mapping[str, Any]] = None,
        watch_history_retention: Any = None,
    ) -> DeletionResult:
        """Delete *user_id*'s channel.

        Reason and retention options are validated before the unit of work
        opens. Domain errors (not found, conflict) propagate unchanged; any
        other failure rolls the unit of work back and is re-raised as
        :class:`ChannelDeletionFailedError` with the cause attached.
        """

        deletion_reason = parse_deletion_reason(reason)
        policy = DataRetentionPolicy.from_options(data_retention, watch_history_retention)

        logger.info(
            "Deleting channel %s (reason=%s, policy=%s)",
            user_id,
            deletion_reason.value,
            policy.to_dict(),
        )

        try:
            async with self._uow.transaction() as uow:
                user = await uow.users.get_by_id(user_id, for_update=True)
                if user is None:
                    raise ChannelNotFoundError(user_id=str(user_id))

                owned = await self.capture_owned_content(uow, user_id)
                stats = await self.capture_channel_stats(uow, user_id, owned)
                tombstone = await uow.tombstones.create(
                    self._build_tombstone(user, stats, deletion_reason, deleted_by, policy)
                )

                await self._subscriptions.handle_subscriptions(uow, user_id)
                await self._content.handle_videos(uow, user_id, policy.videos)
                await self._content.handle_comments(uow, user_id, policy.comments)
                await self._content.handle_playlists(uow, user_id)
                await self._content.handle_tweets(uow, user_id)
                await self._content.handle_engagements(uow, user_id, owned)
                await self._watch_history.handle_watch_history(
                    uow,
                    user_id,
                    owned.video_ids,
                    policy.watch_history,
                    tombstone_id=tombstone.id,
                )

                await uow.users.delete(user_id)
        except DomainException:
            raise
        except Exception as exc:
            logger.exception("Channel deletion failed for %s", user_id)
            raise ChannelDeletionFailedError(user_id=str(user_id), reason=str(exc)) from exc

        logger.info(
            "Channel deleted: %s (%d subscribers)", user.username, stats.subscriber_count
        )
        return DeletionResult(success=True, tombstone_id=tombstone.id, stats=stats)

    async def get_deletion_stats(self) -> DeletionStats:
        async with self._uow.transaction() as uow:
            return await uow.tombstones.aggregate_stats()

    async def list_deleted_channels(
        self,
        recoverable: Optional[bool] = None,
        pagination: PaginationParams | None = None,
    ) -> PaginatedResponse[ChannelTombstone]:
        params = pagination or PaginationParams()
        async with self._uow.transaction() as uow:
            items, total = await uow.tombstones.list_recent(
                recoverable=recoverable, offset=params.offset, limit=params.size
            )
        return PaginatedResponse(items=items, total=total, page=params.page, size=params.size)

    # -- snapshot steps ---------------------------------------------------

    @staticmethod
    async def capture_owned_content(uow: TransactionContext, user_id: UUID) -> OwnedContent:
        return OwnedContent(
            video_ids=tuple(await uow.videos.list_ids_by_owner(user_id)),
            comment_ids=tuple(await uow.comments.list_ids_by_owner(user_id)),
            tweet_ids=tuple(await uow.tweets.list_ids_by_owner(user_id)),
            playlist_ids=tuple(await uow.playlists.list_ids_by_owner(user_id)),
        )

    @staticmethod
    async def capture_channel_stats(
        uow: TransactionContext, user_id: UUID, owned: OwnedContent
    ) -> ChannelStats:
        """Count the channel's true pre-deletion state from the source collections."""
        total_likes = 0
        if owned.video_ids:
            total_likes = await uow.engagements.count_for_content(
                [ContentRef.video(v) for v in owned.video_ids], EngagementType.LIKE
            )
        return ChannelStats(
            subscriber_count=await uow.subscriptions.count_active_for_channel(user_id),
            video_count=await uow.videos.count_published_by_owner(user_id),
            total_views=await uow.videos.sum_views_by_owner(user_id),
            total_likes=total_likes,
            total_comments=await uow.comments.count_by_owner(user_id),
        )

    def _build_tombstone(
        self,
        user: User,
        stats: ChannelStats,
        reason: DeletionReason,
        deleted_by: Optional[UUID],
        policy: DataRetentionPolicy,
    ) -> ChannelTombstone:
        now = self._clock()
        return ChannelTombstone(
            original_user_id=user.id,
            username=user.username,
            full_name=user.full_name,
            email=user.email,
            stats=stats,
            deletion_reason=reason,
            deleted_by=deleted_by,
            deleted_at=now,
            recovery_deadline=now + self._recovery_window,
            data_retention=policy,
        )
