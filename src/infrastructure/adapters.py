"""In-memory adapters implementing the application-layer storage ports.

Used for wiring validation and unit tests. :class:`InMemoryUnitOfWork`
serialises transactions with an ``asyncio.Lock`` and restores a snapshot of
every collection when the transaction body raises, so the all-or-nothing
behaviour of the SQL adapter is reproduced in memory.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from collections import Counter
from collections.abc import AsyncIterator, Mapping, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Optional
from uuid import UUID

from application.ports import WatchHistoryFilter
from domain.exceptions import ChannelAlreadyDeletedError, UserAlreadyExistsError
from domain.models import (
    ChannelTombstone,
    Comment,
    ContentRef,
    DeletionStats,
    Engagement,
    EngagementType,
    Playlist,
    Subscription,
    SubscriptionStatus,
    Tweet,
    User,
    Video,
    WatchAggregate,
    WatchDevice,
    WatchHistory,
    WatchHistoryMetadata,
)
from domain.models.content import ANONYMOUS_OWNER_NAME, tombstone_marker

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Backing store
# ---------------------------------------------------------------------------


@dataclass
class InMemoryDatabase:
    """Every collection, keyed by document id."""

    users: dict[UUID, User] = field(default_factory=dict)
    videos: dict[UUID, Video] = field(default_factory=dict)
    comments: dict[UUID, Comment] = field(default_factory=dict)
    tweets: dict[UUID, Tweet] = field(default_factory=dict)
    playlists: dict[UUID, Playlist] = field(default_factory=dict)
    subscriptions: dict[UUID, Subscription] = field(default_factory=dict)
    engagements: dict[UUID, Engagement] = field(default_factory=dict)
    watch_history: dict[UUID, WatchHistory] = field(default_factory=dict)
    tombstones: dict[UUID, ChannelTombstone] = field(default_factory=dict)

    def snapshot(self) -> InMemoryDatabase:
        return copy.deepcopy(self)

    def restore(self, snapshot: InMemoryDatabase) -> None:
        self.__dict__.update(snapshot.__dict__)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class InMemoryUserDirectory:
    def __init__(self, db: InMemoryDatabase) -> None:
        self._db = db

    async def get_by_id(self, user_id: UUID, *, for_update: bool = False) -> Optional[User]:
        return self._db.users.get(user_id)

    async def find_identity_conflict(self, username: str, email: str) -> Optional[str]:
        for user in self._db.users.values():
            if user.username == username:
                return "username"
            if user.email == email:
                return "email"
        return None

    async def create(self, user: User) -> User:
        if user.id in self._db.users:
            raise UserAlreadyExistsError(user_id=str(user.id))
        self._db.users[user.id] = user
        return user

    async def set_subscriber_counts(self, counts: Mapping[UUID, int]) -> int:
        touched = 0
        for user_id, count in counts.items():
            user = self._db.users.get(user_id)
            if user is not None:
                user.subscriber_count = count
                touched += 1
        return touched

    async def delete(self, user_id: UUID) -> bool:
        return self._db.users.pop(user_id, None) is not None


# ---------------------------------------------------------------------------
# Content
# ---------------------------------------------------------------------------


class InMemoryVideoStore:
    def __init__(self, db: InMemoryDatabase) -> None:
        self._db = db

    def _owned(self, owner_id: UUID) -> list[Video]:
        return [v for v in self._db.videos.values() if v.owner_id == owner_id]

    async def list_ids_by_owner(self, owner_id: UUID) -> list[UUID]:
        return [v.id for v in self._owned(owner_id)]

    async def get_many(self, video_ids: Sequence[UUID]) -> dict[UUID, Video]:
        return {vid: self._db.videos[vid] for vid in video_ids if vid in self._db.videos}

    async def existing_ids(self, video_ids: Sequence[UUID]) -> set[UUID]:
        return {vid for vid in video_ids if vid in self._db.videos}

    async def count_published_by_owner(self, owner_id: UUID) -> int:
        return sum(1 for v in self._owned(owner_id) if v.is_published)

    async def sum_views_by_owner(self, owner_id: UUID) -> int:
        return sum(v.views for v in self._owned(owner_id))

    async def delete_by_owner(self, owner_id: UUID) -> int:
        owned = self._owned(owner_id)
        for video in owned:
            del self._db.videos[video.id]
        return len(owned)

    async def archive_by_owner(self, owner_id: UUID) -> int:
        owned = self._owned(owner_id)
        for video in owned:
            video.owner_id = None
            video.is_published = False
            video.title = tombstone_marker()
        return len(owned)

    async def anonymize_by_owner(self, owner_id: UUID) -> int:
        owned = self._owned(owner_id)
        for video in owned:
            video.owner_id = None
            video.owner_name = ANONYMOUS_OWNER_NAME
        return len(owned)


class InMemoryCommentStore:
    def __init__(self, db: InMemoryDatabase) -> None:
        self._db = db

    def _owned(self, owner_id: UUID) -> list[Comment]:
        return [c for c in self._db.comments.values() if c.owner_id == owner_id]

    async def list_ids_by_owner(self, owner_id: UUID) -> list[UUID]:
        return [c.id for c in self._owned(owner_id)]

    async def get_by_id(self, comment_id: UUID) -> Optional[Comment]:
        return self._db.comments.get(comment_id)

    async def count_by_owner(self, owner_id: UUID) -> int:
        return len(self._owned(owner_id))

    async def delete_by_owner(self, owner_id: UUID) -> int:
        owned = self._owned(owner_id)
        for comment in owned:
            del self._db.comments[comment.id]
        return len(owned)

    async def archive_by_owner(self, owner_id: UUID) -> int:
        owned = self._owned(owner_id)
        for comment in owned:
            comment.owner_id = None
            comment.is_hidden = True
            comment.content = tombstone_marker()
        return len(owned)

    async def anonymize_by_owner(self, owner_id: UUID) -> int:
        owned = self._owned(owner_id)
        for comment in owned:
            comment.owner_id = None
            comment.owner_name = ANONYMOUS_OWNER_NAME
        return len(owned)


class InMemoryOwnedStore:
    """Tweets or playlists, depending on the collection it is bound to."""

    def __init__(self, collection: dict) -> None:
        self._collection = collection

    async def list_ids_by_owner(self, owner_id: UUID) -> list[UUID]:
        return [doc.id for doc in self._collection.values() if doc.owner_id == owner_id]

    async def delete_by_owner(self, owner_id: UUID) -> int:
        ids = await self.list_ids_by_owner(owner_id)
        for doc_id in ids:
            del self._collection[doc_id]
        return len(ids)


# ---------------------------------------------------------------------------
# Subscriptions & engagements
# ---------------------------------------------------------------------------


class InMemorySubscriptionStore:
    def __init__(self, db: InMemoryDatabase) -> None:
        self._db = db

    async def count_active_for_channel(self, channel_id: UUID) -> int:
        return sum(
            1
            for s in self._db.subscriptions.values()
            if s.channel_id == channel_id and s.status is SubscriptionStatus.ACTIVE
        )

    async def cancel_active_batch(self, channel_id: UUID, limit: int) -> list[UUID]:
        batch = [
            s
            for s in self._db.subscriptions.values()
            if s.channel_id == channel_id and s.status is SubscriptionStatus.ACTIVE
        ][:limit]
        now = datetime.now(UTC)
        for sub in batch:
            sub.status = SubscriptionStatus.CANCELLED
            sub.updated_at = now
        return [s.subscriber_id for s in batch]

    async def count_active_by_subscriber(
        self, subscriber_ids: Sequence[UUID]
    ) -> dict[UUID, int]:
        wanted = set(subscriber_ids)
        counts = Counter(
            s.subscriber_id
            for s in self._db.subscriptions.values()
            if s.subscriber_id in wanted and s.status is SubscriptionStatus.ACTIVE
        )
        return {sid: counts.get(sid, 0) for sid in wanted}


class InMemoryEngagementStore:
    def __init__(self, db: InMemoryDatabase) -> None:
        self._db = db

    async def count_for_content(
        self, refs: Sequence[ContentRef], engagement_type: EngagementType
    ) -> int:
        wanted = set(refs)
        return sum(
            1
            for e in self._db.engagements.values()
            if e.content in wanted and e.engagement_type is engagement_type
        )

    async def delete_for_content(self, refs: Sequence[ContentRef]) -> int:
        wanted = set(refs)
        doomed = [e.id for e in self._db.engagements.values() if e.content in wanted]
        for eid in doomed:
            del self._db.engagements[eid]
        return len(doomed)

    async def delete_by_user(self, user_id: UUID) -> int:
        doomed = [e.id for e in self._db.engagements.values() if e.user_id == user_id]
        for eid in doomed:
            del self._db.engagements[eid]
        return len(doomed)


# ---------------------------------------------------------------------------
# Watch history
# ---------------------------------------------------------------------------


class InMemoryWatchHistoryStore:
    def __init__(self, db: InMemoryDatabase) -> None:
        self._db = db

    def _by_user(self, user_id: UUID) -> list[WatchHistory]:
        return [w for w in self._db.watch_history.values() if w.user_id == user_id]

    def _by_videos(self, video_ids: Sequence[UUID]) -> list[WatchHistory]:
        wanted = set(video_ids)
        return [w for w in self._db.watch_history.values() if w.video_id in wanted]

    def _delete(self, records: list[WatchHistory]) -> int:
        for record in records:
            del self._db.watch_history[record.id]
        return len(records)

    async def delete_by_user(self, user_id: UUID) -> int:
        return self._delete(self._by_user(user_id))

    async def delete_by_videos(self, video_ids: Sequence[UUID]) -> int:
        return self._delete(self._by_videos(video_ids))

    async def anonymize_by_user(self, user_id: UUID) -> int:
        records = self._by_user(user_id)
        for record in records:
            record.user_id = None
            record.session_id = None
            record.device = WatchDevice.UNKNOWN
            record.metadata = replace(record.metadata, deleted_channel=True)
        return len(records)

    async def anonymize_by_videos(self, video_ids: Sequence[UUID]) -> int:
        records = self._by_videos(video_ids)
        for record in records:
            record.video_id = None
            record.metadata = replace(record.metadata, deleted_channel=True)
        return len(records)

    async def archive_by_user(
        self, user_id: UUID, *, reason: str, tombstone_id: Optional[UUID], at: datetime
    ) -> int:
        records = self._by_user(user_id)
        for record in records:
            record.metadata = replace(
                record.metadata,
                deleted_channel=True,
                original_user_id=user_id,
                tombstone_id=tombstone_id,
            )
            record.user_id = None
            self._mark_archived(record, reason, at)
        return len(records)

    async def archive_by_videos(
        self, video_ids: Sequence[UUID], *, reason: str, tombstone_id: Optional[UUID], at: datetime
    ) -> int:
        records = self._by_videos(video_ids)
        for record in records:
            record.metadata = replace(
                record.metadata,
                deleted_channel=True,
                original_video_id=record.video_id,
                tombstone_id=tombstone_id,
            )
            record.video_id = None
            self._mark_archived(record, reason, at)
        return len(records)

    async def restore_archived(
        self, tombstone_id: UUID, new_user_id: UUID, *, reason: str
    ) -> int:
        records = [
            w
            for w in self._db.watch_history.values()
            if w.archived
            and w.archived_reason == reason
            and w.metadata.tombstone_id == tombstone_id
        ]
        for record in records:
            meta = record.metadata
            if meta.original_video_id is not None:
                record.video_id = meta.original_video_id
            if meta.original_user_id is not None:
                record.user_id = new_user_id
            record.archived = False
            record.archived_at = None
            record.archived_reason = None
            record.metadata = WatchHistoryMetadata()
        return len(records)

    async def list_for_user(
        self, user_id: UUID, filters: WatchHistoryFilter, offset: int, limit: int
    ) -> tuple[list[WatchHistory], int]:
        records = [r for r in self._by_user(user_id) if _matches(r, filters)]
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records[offset : offset + limit], len(records)

    async def list_all_for_user(self, user_id: UUID) -> list[WatchHistory]:
        return sorted(self._by_user(user_id), key=lambda r: r.created_at, reverse=True)

    async def aggregate_active_for_user(self, user_id: UUID) -> WatchAggregate:
        return WatchAggregate.of(w for w in self._by_user(user_id) if not w.archived)

    async def aggregate_deleted_channel_records(self) -> WatchAggregate:
        return WatchAggregate.of(
            w for w in self._db.watch_history.values() if w.metadata.deleted_channel
        )

    async def referenced_video_ids(self) -> set[UUID]:
        return {
            w.video_id
            for w in self._db.watch_history.values()
            if w.video_id is not None and not w.archived
        }

    async def archive_missing_videos(
        self, missing_video_ids: Sequence[UUID], *, reason: str, at: datetime
    ) -> int:
        records = [r for r in self._by_videos(missing_video_ids) if not r.archived]
        for record in records:
            record.metadata = replace(
                record.metadata, deleted_channel=True, original_video_id=record.video_id
            )
            record.video_id = None
            self._mark_archived(record, reason, at)
        return len(records)

    async def archive_all_for_user(self, user_id: UUID, *, reason: str, at: datetime) -> int:
        records = [r for r in self._by_user(user_id) if not r.archived]
        for record in records:
            self._mark_archived(record, reason, at)
        return len(records)

    @staticmethod
    def _mark_archived(record: WatchHistory, reason: str, at: datetime) -> None:
        record.archived = True
        record.archived_at = at
        record.archived_reason = reason


def _matches(record: WatchHistory, filters: WatchHistoryFilter) -> bool:
    if not filters.include_archived and record.archived:
        return False
    if not filters.include_deleted_channels and record.metadata.deleted_channel:
        return False
    if filters.device is not None and record.device is not filters.device:
        return False
    if filters.start is not None and record.created_at < filters.start:
        return False
    if filters.end is not None and record.created_at > filters.end:
        return False
    return True


# ---------------------------------------------------------------------------
# Tombstones
# ---------------------------------------------------------------------------


class InMemoryTombstoneStore:
    def __init__(self, db: InMemoryDatabase) -> None:
        self._db = db

    async def create(self, tombstone: ChannelTombstone) -> ChannelTombstone:
        for existing in self._db.tombstones.values():
            if existing.original_user_id == tombstone.original_user_id and existing.is_recoverable:
                raise ChannelAlreadyDeletedError(user_id=str(tombstone.original_user_id))
        self._db.tombstones[tombstone.id] = tombstone
        return tombstone

    async def get_by_id(
        self, tombstone_id: UUID, *, for_update: bool = False
    ) -> Optional[ChannelTombstone]:
        return self._db.tombstones.get(tombstone_id)

    async def mark_consumed(
        self, tombstone_id: UUID, *, at: datetime, recovered_user_id: Optional[UUID]
    ) -> bool:
        tombstone = self._db.tombstones.get(tombstone_id)
        if tombstone is None or not tombstone.is_recoverable:
            return False
        tombstone.is_recoverable = False
        tombstone.recovered_at = at
        tombstone.recovered_user_id = recovered_user_id
        return True

    async def list_recent(
        self, *, recoverable: Optional[bool], offset: int, limit: int
    ) -> tuple[list[ChannelTombstone], int]:
        items = list(self._db.tombstones.values())
        if recoverable is not None:
            items = [t for t in items if t.is_recoverable == recoverable]
        items.sort(key=lambda t: t.deleted_at, reverse=True)
        return items[offset : offset + limit], len(items)

    async def aggregate_stats(self) -> DeletionStats:
        items = list(self._db.tombstones.values())
        return DeletionStats(
            total_deleted_channels=len(items),
            total_subscribers_affected=sum(t.stats.subscriber_count for t in items),
            total_videos_affected=sum(t.stats.video_count for t in items),
            total_views_affected=sum(t.stats.total_views for t in items),
        )

    async def expire_overdue(self, now: datetime) -> int:
        overdue = [
            t
            for t in self._db.tombstones.values()
            if t.is_recoverable and t.recovery_deadline is not None and t.recovery_deadline < now
        ]
        for tombstone in overdue:
            tombstone.is_recoverable = False
        return len(overdue)

    async def purge_expired(self, now: datetime) -> int:
        doomed = [
            t.id
            for t in self._db.tombstones.values()
            if not t.is_recoverable
            and t.recovery_deadline is not None
            and t.recovery_deadline < now
        ]
        for tid in doomed:
            del self._db.tombstones[tid]
        return len(doomed)


# ---------------------------------------------------------------------------
# Unit of work
# ---------------------------------------------------------------------------


class InMemoryTransactionContext:
    """Stores bound to one in-memory transaction."""

    def __init__(self, db: InMemoryDatabase) -> None:
        self.users = InMemoryUserDirectory(db)
        self.videos = InMemoryVideoStore(db)
        self.comments = InMemoryCommentStore(db)
        self.tweets = InMemoryOwnedStore(db.tweets)
        self.playlists = InMemoryOwnedStore(db.playlists)
        self.subscriptions = InMemorySubscriptionStore(db)
        self.engagements = InMemoryEngagementStore(db)
        self.watch_history = InMemoryWatchHistoryStore(db)
        self.tombstones = InMemoryTombstoneStore(db)


class InMemoryUnitOfWork:
    def __init__(self, db: InMemoryDatabase | None = None) -> None:
        self.db = db or InMemoryDatabase()
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[InMemoryTransactionContext]:
        async with self._lock:
            snapshot = self.db.snapshot()
            try:
                yield InMemoryTransactionContext(self.db)
            except BaseException:
                self.db.restore(snapshot)
                logger.debug("In-memory transaction rolled back")
                raise
