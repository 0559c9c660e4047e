from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Optional
from uuid import UUID, uuid4

CHANNEL_DELETED_REASON = "channel_deleted"
VIDEO_DELETED_REASON = "video_deleted"


class WatchDevice(str, enum.Enum):
    MOBILE = "mobile"
    DESKTOP = "desktop"
    TABLET = "tablet"
    TV = "tv"
    UNKNOWN = "unknown"


@dataclass
class WatchHistoryMetadata:
    """Markers left on a record whose video or viewer belonged to a deleted channel.

    ``original_video_id`` / ``original_user_id`` are only kept by the
    ``archived`` retention branch; they are what makes that branch reversible.
    """

    deleted_channel: bool = False
    original_video_id: Optional[UUID] = None
    original_user_id: Optional[UUID] = None
    tombstone_id: Optional[UUID] = None


@dataclass
class WatchHistory:
    id: UUID = field(default_factory=uuid4)
    user_id: Optional[UUID] = None
    video_id: Optional[UUID] = None
    watch_progress: float = 0.0
    watch_duration: float = 0.0
    is_completed: bool = False
    liked: bool = False
    device: WatchDevice = WatchDevice.UNKNOWN
    session_id: Optional[str] = None
    referrer: str = "unknown"
    archived: bool = False
    archived_at: Optional[datetime] = None
    archived_reason: Optional[str] = None
    metadata: WatchHistoryMetadata = field(default_factory=WatchHistoryMetadata)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class WatchAggregate:
    """Totals over a set of watch-history records."""

    records: int = 0
    total_watch_time: float = 0.0
    avg_watch_progress: float = 0.0
    completed: int = 0
    liked: int = 0
    from_deleted_channels: int = 0

    @classmethod
    def of(cls, records: Iterable[WatchHistory]) -> WatchAggregate:
        rows = list(records)
        if not rows:
            return cls()
        return cls(
            records=len(rows),
            total_watch_time=sum(r.watch_duration for r in rows),
            avg_watch_progress=sum(r.watch_progress for r in rows) / len(rows),
            completed=sum(1 for r in rows if r.is_completed),
            liked=sum(1 for r in rows if r.liked),
            from_deleted_channels=sum(1 for r in rows if r.metadata.deleted_channel),
        )
