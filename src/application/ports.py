"""Storage ports consumed by the channel deletion / recovery core.

Every store a service touches is reached through a :class:`TransactionContext`
yielded by a :class:`UnitOfWork`. The context is passed explicitly into every
processor call, so a store can never be used outside the transaction it was
bound to.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol
from uuid import UUID

from domain.models import (
    ChannelTombstone,
    Comment,
    ContentRef,
    DeletionStats,
    EngagementType,
    User,
    Video,
    WatchAggregate,
    WatchDevice,
    WatchHistory,
)


@dataclass(frozen=True)
class WatchHistoryFilter:
    include_archived: bool = False
    include_deleted_channels: bool = False
    device: Optional[WatchDevice] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None


class UserDirectory(Protocol):
    async def get_by_id(self, user_id: UUID, *, for_update: bool = False) -> Optional[User]: ...

    async def find_identity_conflict(self, username: str, email: str) -> Optional[str]:
        """Name of the unique field (``username`` or ``email``) already taken, if any."""
        ...

    async def create(self, user: User) -> User: ...

    async def set_subscriber_counts(self, counts: Mapping[UUID, int]) -> int:
        """Write recomputed ``subscriber_count`` values; return users touched."""
        ...

    async def delete(self, user_id: UUID) -> bool: ...


class VideoStore(Protocol):
    async def list_ids_by_owner(self, owner_id: UUID) -> list[UUID]: ...

    async def get_many(self, video_ids: Sequence[UUID]) -> dict[UUID, Video]: ...

    async def existing_ids(self, video_ids: Sequence[UUID]) -> set[UUID]: ...

    async def count_published_by_owner(self, owner_id: UUID) -> int: ...

    async def sum_views_by_owner(self, owner_id: UUID) -> int: ...

    async def delete_by_owner(self, owner_id: UUID) -> int: ...

    async def archive_by_owner(self, owner_id: UUID) -> int: ...

    async def anonymize_by_owner(self, owner_id: UUID) -> int: ...


class CommentStore(Protocol):
    async def list_ids_by_owner(self, owner_id: UUID) -> list[UUID]: ...

    async def get_by_id(self, comment_id: UUID) -> Optional[Comment]: ...

    async def count_by_owner(self, owner_id: UUID) -> int: ...

    async def delete_by_owner(self, owner_id: UUID) -> int: ...

    async def archive_by_owner(self, owner_id: UUID) -> int: ...

    async def anonymize_by_owner(self, owner_id: UUID) -> int: ...


class OwnedStore(Protocol):
    """Tweets and playlists: hard-deleted with their owner."""

    async def list_ids_by_owner(self, owner_id: UUID) -> list[UUID]: ...

    async def delete_by_owner(self, owner_id: UUID) -> int: ...


TweetStore = OwnedStore
PlaylistStore = OwnedStore


class SubscriptionStore(Protocol):
    async def count_active_for_channel(self, channel_id: UUID) -> int: ...

    async def cancel_active_batch(self, channel_id: UUID, limit: int) -> list[UUID]:
        """Cancel up to *limit* active edges; return their subscriber ids."""
        ...

    async def count_active_by_subscriber(
        self, subscriber_ids: Sequence[UUID]
    ) -> dict[UUID, int]:
        """One aggregate: active-subscription count for each given subscriber."""
        ...


class EngagementStore(Protocol):
    async def count_for_content(
        self, refs: Sequence[ContentRef], engagement_type: EngagementType
    ) -> int: ...

    async def delete_for_content(self, refs: Sequence[ContentRef]) -> int: ...

    async def delete_by_user(self, user_id: UUID) -> int: ...


class WatchHistoryStore(Protocol):
    async def delete_by_user(self, user_id: UUID) -> int: ...

    async def delete_by_videos(self, video_ids: Sequence[UUID]) -> int: ...

    async def anonymize_by_user(self, user_id: UUID) -> int: ...

    async def anonymize_by_videos(self, video_ids: Sequence[UUID]) -> int: ...

    async def archive_by_user(
        self, user_id: UUID, *, reason: str, tombstone_id: Optional[UUID], at: datetime
    ) -> int: ...

    async def archive_by_videos(
        self, video_ids: Sequence[UUID], *, reason: str, tombstone_id: Optional[UUID], at: datetime
    ) -> int: ...

    async def restore_archived(
        self, tombstone_id: UUID, new_user_id: UUID, *, reason: str
    ) -> int: ...

    async def list_for_user(
        self, user_id: UUID, filters: WatchHistoryFilter, offset: int, limit: int
    ) -> tuple[list[WatchHistory], int]: ...

    async def list_all_for_user(self, user_id: UUID) -> list[WatchHistory]: ...

    async def aggregate_active_for_user(self, user_id: UUID) -> WatchAggregate: ...

    async def aggregate_deleted_channel_records(self) -> WatchAggregate: ...

    async def referenced_video_ids(self) -> set[UUID]:
        """Video ids referenced by non-archived records."""
        ...

    async def archive_missing_videos(
        self, missing_video_ids: Sequence[UUID], *, reason: str, at: datetime
    ) -> int: ...

    async def archive_all_for_user(self, user_id: UUID, *, reason: str, at: datetime) -> int: ...


class TombstoneStore(Protocol):
    async def create(self, tombstone: ChannelTombstone) -> ChannelTombstone: ...

    async def get_by_id(
        self, tombstone_id: UUID, *, for_update: bool = False
    ) -> Optional[ChannelTombstone]: ...

    async def mark_consumed(
        self, tombstone_id: UUID, *, at: datetime, recovered_user_id: Optional[UUID]
    ) -> bool: ...

    async def list_recent(
        self, *, recoverable: Optional[bool], offset: int, limit: int
    ) -> tuple[list[ChannelTombstone], int]: ...

    async def aggregate_stats(self) -> DeletionStats: ...

    async def expire_overdue(self, now: datetime) -> int: ...

    async def purge_expired(self, now: datetime) -> int: ...


class TransactionContext(Protocol):
    """Stores bound to one open transaction."""

    users: UserDirectory
    videos: VideoStore
    comments: CommentStore
    tweets: TweetStore
    playlists: PlaylistStore
    subscriptions: SubscriptionStore
    engagements: EngagementStore
    watch_history: WatchHistoryStore
    tombstones: TombstoneStore


class UnitOfWork(Protocol):
    """Opens a transaction; commits on clean exit, rolls back on any exception."""

    def transaction(self) -> AbstractAsyncContextManager[TransactionContext]: ...
