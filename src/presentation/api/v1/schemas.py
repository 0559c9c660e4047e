"""
Pydantic v2 request/response schemas for the channel lifecycle API.

Error responses follow RFC 9457 Problem Details.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from domain.models import (
    ChannelStats,
    ChannelTombstone,
    DeletionReason,
    DeletionStats,
    RetentionAction,
    WatchDevice,
)

# ---------------------------------------------------------------------------
# Base / shared
# ---------------------------------------------------------------------------


class _ApiModel(BaseModel):
    """Snake_case throughout; attributes can be read from domain dataclasses."""

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True,
    )


class PaginationMeta(BaseModel):
    """Pagination metadata included in every list response."""

    page: int = Field(..., description="Current page number.")
    page_size: int = Field(..., description="Requested page size.")
    total_items: int = Field(..., description="Total number of items.")
    total_pages: int = Field(..., description="Total number of pages.")
    has_next: bool = Field(..., description="Whether a further page exists.")


# ---------------------------------------------------------------------------
# RFC 9457 Problem Details error response
# ---------------------------------------------------------------------------


class ErrorResponse(_ApiModel):
    """Error response following RFC 9457 Problem Details for HTTP APIs.

    See https://www.rfc-editor.org/rfc/rfc9457
    """

    type: str = Field(
        default="about:blank",
        description="A URI reference that identifies the problem type.",
        examples=["https://api.videohub.example/problems/channel-not-found"],
    )
    title: str = Field(..., examples=["Channel Not Found"])
    status: int = Field(..., examples=[404])
    detail: str = Field(
        ...,
        examples=["User not found: 550e8400-e29b-41d4-a716-446655440000"],
    )
    instance: str | None = Field(default=None, examples=["/api/v1/channels/me"])
    errors: list[dict[str, Any]] | None = Field(
        default=None,
        description="Validation error details (when status is 422).",
    )


# ---------------------------------------------------------------------------
# Channel deletion / recovery
# ---------------------------------------------------------------------------


class DeleteChannelRequest(_ApiModel):
    """Optional body for a channel deletion.

    Retention values are validated by the domain so an unknown action is
    reported as a 400 problem naming the allowed values.
    """

    reason: str | None = Field(
        default=None,
        description="Deletion reason.",
        examples=[DeletionReason.USER_REQUEST.value],
    )
    data_retention: dict[str, str] | None = Field(
        default=None,
        description="Per content class action overrides.",
        examples=[{"videos": RetentionAction.DELETED.value, "comments": "anonymized"}],
    )
    watch_history_retention: str | None = Field(
        default=None,
        description="Watch-history action; wins over data_retention.watch_history.",
        examples=[RetentionAction.ARCHIVED.value],
    )


class ChannelStatsResponse(_ApiModel):
    subscriber_count: int
    video_count: int
    total_views: int
    total_likes: int
    total_comments: int

    @classmethod
    def from_domain(cls, stats: ChannelStats) -> ChannelStatsResponse:
        return cls.model_validate(stats)


class DeletionResponse(_ApiModel):
    success: bool
    tombstone_id: uuid.UUID
    stats: ChannelStatsResponse
    message: str = "Channel deleted successfully"


class RecoverChannelRequest(_ApiModel):
    new_user_id: uuid.UUID | None = Field(
        default=None,
        description="Id under which the channel is re-created.",
    )


class RecoveryResponse(_ApiModel):
    success: bool
    user_id: uuid.UUID
    tombstone_id: uuid.UUID
    message: str = "Channel recovered successfully"


class DeletionStatsResponse(_ApiModel):
    total_deleted_channels: int
    total_subscribers_affected: int
    total_videos_affected: int
    total_views_affected: int

    @classmethod
    def from_domain(cls, stats: DeletionStats) -> DeletionStatsResponse:
        return cls.model_validate(stats)


class TombstoneResponse(_ApiModel):
    id: uuid.UUID
    original_user_id: uuid.UUID
    username: str
    full_name: str
    email: str
    stats: ChannelStatsResponse
    deletion_reason: str
    deleted_by: uuid.UUID | None
    deleted_at: datetime
    recovery_deadline: datetime
    is_recoverable: bool
    data_retention: dict[str, str]
    recovered_at: datetime | None = None
    recovered_user_id: uuid.UUID | None = None

    @classmethod
    def from_domain(cls, tombstone: ChannelTombstone) -> TombstoneResponse:
        return cls(
            id=tombstone.id,
            original_user_id=tombstone.original_user_id,
            username=tombstone.username,
            full_name=tombstone.full_name,
            email=tombstone.email,
            stats=ChannelStatsResponse.from_domain(tombstone.stats),
            deletion_reason=tombstone.deletion_reason.value,
            deleted_by=tombstone.deleted_by,
            deleted_at=tombstone.deleted_at,
            recovery_deadline=tombstone.recovery_deadline,
            is_recoverable=tombstone.is_recoverable,
            data_retention=tombstone.data_retention.to_dict(),
            recovered_at=tombstone.recovered_at,
            recovered_user_id=tombstone.recovered_user_id,
        )


class TombstoneListResponse(_ApiModel):
    items: list[TombstoneResponse]
    pagination: PaginationMeta


# ---------------------------------------------------------------------------
# Watch history
# ---------------------------------------------------------------------------


class WatchHistoryItemResponse(_ApiModel):
    id: uuid.UUID
    video_id: uuid.UUID | None
    video_title: str | None
    video_owner_id: uuid.UUID | None
    video_owner_name: str | None
    watch_progress: float
    watch_duration: float
    is_completed: bool
    liked: bool
    device: WatchDevice
    archived: bool
    archived_reason: str | None
    is_from_deleted_channel: bool
    watched_at: datetime


class WatchHistoryListResponse(_ApiModel):
    items: list[WatchHistoryItemResponse]
    pagination: PaginationMeta


class WatchStatsResponse(_ApiModel):
    total_videos_watched: int
    total_watch_time: float
    avg_watch_progress: float
    completed_videos: int
    liked_videos: int
    videos_from_deleted_channels: int


class DeletedChannelAnalyticsResponse(_ApiModel):
    total_watch_records: int
    total_watch_time: float
    avg_watch_progress: float
    completed_videos: int
    liked_videos: int


class RestoreWatchHistoryRequest(_ApiModel):
    tombstone_id: uuid.UUID


class CountResponse(_ApiModel):
    """Outcome of a bulk watch-history mutation."""

    archived: int | None = None
    deleted: int | None = None
    restored: int | None = None
