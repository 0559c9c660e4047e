"""Watch-history queries, export and housekeeping.

Respects the ``archived`` / ``metadata.deleted_channel`` markers left by the
channel-deletion flow. None of these operations take part in a deletion
transaction; each runs in its own unit of work.
"""

from __future__ import annotations

import csv
import io
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Optional
from uuid import UUID

from application.ports import UnitOfWork, WatchHistoryFilter
from application.schemas.pagination import PaginatedResponse, PaginationParams
from domain.exceptions import ValidationError
from domain.models import Video, WatchDevice, WatchHistory
from domain.models.watch_history import CHANNEL_DELETED_REASON, VIDEO_DELETED_REASON

logger = logging.getLogger(__name__)

DELETED_VIDEO_TITLE = "[Deleted Video]"

_EXPORT_FIELDS = (
    "video_title",
    "video_description",
    "watch_date",
    "watch_progress",
    "watch_duration",
    "is_completed",
    "liked",
    "device",
    "is_from_deleted_channel",
)


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WatchHistoryEntryView:
    entry: WatchHistory
    video: Optional[Video] = None

    @property
    def is_from_deleted_channel(self) -> bool:
        return self.entry.metadata.deleted_channel

    @property
    def original_video_id(self) -> Optional[UUID]:
        return self.entry.metadata.original_video_id


@dataclass(frozen=True)
class WatchStats:
    total_videos_watched: int = 0
    total_watch_time: float = 0.0
    avg_watch_progress: float = 0.0
    completed_videos: int = 0
    liked_videos: int = 0
    videos_from_deleted_channels: int = 0


@dataclass(frozen=True)
class DeletedChannelAnalytics:
    total_watch_records: int = 0
    total_watch_time: float = 0.0
    avg_watch_progress: float = 0.0
    completed_videos: int = 0
    liked_videos: int = 0


@dataclass(frozen=True)
class DateRange:
    start: datetime
    end: datetime


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class WatchHistoryManagementService:
    def __init__(
        self,
        uow: UnitOfWork,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._uow = uow
        self._clock = clock or (lambda: datetime.now(UTC))

    async def get_user_watch_history(
        self,
        user_id: UUID,
        pagination: PaginationParams | None = None,
        *,
        include_archived: bool = False,
        include_deleted_channels: bool = False,
        device: Optional[WatchDevice] = None,
        date_range: Optional[DateRange] = None,
    ) -> PaginatedResponse[WatchHistoryEntryView]:
        """Newest-first page of *user_id*'s history joined with video details."""
        params = pagination or PaginationParams()
        filters = WatchHistoryFilter(
            include_archived=include_archived,
            include_deleted_channels=include_deleted_channels,
            device=device,
            start=date_range.start if date_range else None,
            end=date_range.end if date_range else None,
        )
        async with self._uow.transaction() as uow:
            entries, total = await uow.watch_history.list_for_user(
                user_id, filters, params.offset, params.size
            )
            videos = await uow.videos.get_many([e.video_id for e in entries if e.video_id])

        items = [
            WatchHistoryEntryView(entry=e, video=videos.get(e.video_id) if e.video_id else None)
            for e in entries
        ]
        return PaginatedResponse(items=items, total=total, page=params.page, size=params.size)

    async def get_user_watch_stats(self, user_id: UUID) -> WatchStats:
        async with self._uow.transaction() as uow:
            totals = await uow.watch_history.aggregate_active_for_user(user_id)

        return WatchStats(
            total_videos_watched=totals.records,
            total_watch_time=totals.total_watch_time,
            avg_watch_progress=totals.avg_watch_progress,
            completed_videos=totals.completed,
            liked_videos=totals.liked,
            videos_from_deleted_channels=totals.from_deleted_channels,
        )

    async def cleanup_deleted_videos(self) -> int:
        """Archive history whose video no longer exists. Nothing is deleted."""
        async with self._uow.transaction() as uow:
            referenced = await uow.watch_history.referenced_video_ids()
            existing = await uow.videos.existing_ids(list(referenced))
            missing = sorted(referenced - existing)
            archived = 0
            if missing:
                archived = await uow.watch_history.archive_missing_videos(
                    missing, reason=VIDEO_DELETED_REASON, at=self._clock()
                )

        logger.info("Cleaned up %d watch history records for deleted videos", archived)
        return archived

    async def restore_watch_history_for_channel(
        self, tombstone_id: UUID, new_user_id: UUID
    ) -> int:
        """Reverse the ``archived`` retention branch for one deleted channel."""
        async with self._uow.transaction() as uow:
            restored = await uow.watch_history.restore_archived(
                tombstone_id, new_user_id, reason=CHANNEL_DELETED_REASON
            )
        logger.info("Restored %d watch history records for %s", restored, tombstone_id)
        return restored

    async def get_deleted_channel_analytics(self) -> DeletedChannelAnalytics:
        async with self._uow.transaction() as uow:
            totals = await uow.watch_history.aggregate_deleted_channel_records()

        return DeletedChannelAnalytics(
            total_watch_records=totals.records,
            total_watch_time=totals.total_watch_time,
            avg_watch_progress=totals.avg_watch_progress,
            completed_videos=totals.completed,
            liked_videos=totals.liked,
        )

    async def export_user_watch_history(
        self, user_id: UUID, fmt: str = "json"
    ) -> list[dict[str, Any]] | str:
        """Export every record of *user_id*, newest first.

        ``json`` returns row dicts; ``csv`` returns CSV text with a header row.
        """

        fmt = fmt.lower()
        if fmt not in ("json", "csv"):
            raise ValidationError(f"Unsupported export format: {fmt}")

        async with self._uow.transaction() as uow:
            entries = await uow.watch_history.list_all_for_user(user_id)
            videos = await uow.videos.get_many([e.video_id for e in entries if e.video_id])

        rows = [self._export_row(e, videos.get(e.video_id) if e.video_id else None) for e in entries]
        if fmt == "json":
            return rows

        output = io.StringIO()
        writer = csv.DictWriter(output, fieldnames=_EXPORT_FIELDS)
        writer.writeheader()
        writer.writerows(rows)
        return output.getvalue()

    async def clear_user_watch_history(
        self,
        user_id: UUID,
        *,
        archive: bool = False,
        reason: str = "user_request",
    ) -> dict[str, int]:
        async with self._uow.transaction() as uow:
            if archive:
                count = await uow.watch_history.archive_all_for_user(
                    user_id, reason=reason, at=self._clock()
                )
                return {"archived": count}
            count = await uow.watch_history.delete_by_user(user_id)
            return {"deleted": count}

    # -- helpers ----------------------------------------------------------

    @staticmethod
    def _export_row(entry: WatchHistory, video: Optional[Video]) -> dict[str, Any]:
        return {
            "video_title": video.title if video else DELETED_VIDEO_TITLE,
            "video_description": video.description if video else "",
            "watch_date": entry.created_at.isoformat(),
            "watch_progress": entry.watch_progress,
            "watch_duration": entry.watch_duration,
            "is_completed": entry.is_completed,
            "liked": entry.liked,
            "device": entry.device.value,
            "is_from_deleted_channel": entry.metadata.deleted_channel,
        }
