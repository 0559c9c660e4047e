"""Watch-history API endpoints (per-user views and platform maintenance)."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Path, Query
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from application.schemas.pagination import PaginationParams
from application.services.watch_history_service import (
    DateRange,
    WatchHistoryEntryView,
    WatchHistoryManagementService,
)
from domain.exceptions import ValidationError
from domain.models import WatchDevice
from infrastructure.container import get_watch_history_service

from .schemas import (
    CountResponse,
    DeletedChannelAnalyticsResponse,
    ErrorResponse,
    PaginationMeta,
    RestoreWatchHistoryRequest,
    WatchHistoryItemResponse,
    WatchHistoryListResponse,
    WatchStatsResponse,
)

router = APIRouter(tags=["Watch History"])

UserID = Annotated[uuid.UUID, Path(description="Viewer whose history is addressed.")]


def _item(view: WatchHistoryEntryView) -> WatchHistoryItemResponse:
    entry, video = view.entry, view.video
    return WatchHistoryItemResponse(
        id=entry.id,
        video_id=entry.video_id,
        video_title=video.title if video else None,
        video_owner_id=video.owner_id if video else None,
        video_owner_name=video.owner_name if video else None,
        watch_progress=entry.watch_progress,
        watch_duration=entry.watch_duration,
        is_completed=entry.is_completed,
        liked=entry.liked,
        device=entry.device,
        archived=entry.archived,
        archived_reason=entry.archived_reason,
        is_from_deleted_channel=view.is_from_deleted_channel,
        watched_at=entry.created_at,
    )


def _date_range(start: datetime | None, end: datetime | None) -> DateRange | None:
    if start is None and end is None:
        return None
    if start is None or end is None:
        raise ValidationError("start and end must be supplied together")
    if start > end:
        raise ValidationError("start must not be after end")
    return DateRange(start=start, end=end)


# ---------------------------------------------------------------------------
# Per-user history
# ---------------------------------------------------------------------------


@router.get(
    "/users/{user_id}/watch-history",
    response_model=WatchHistoryListResponse,
    summary="List a user's watch history, newest first",
    responses={400: {"description": "Invalid date range.", "model": ErrorResponse}},
)
async def list_watch_history(
    user_id: UserID,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    include_archived: bool = Query(False),
    include_deleted_channels: bool = Query(False),
    device: WatchDevice | None = Query(None),
    start: datetime | None = Query(None),
    end: datetime | None = Query(None),
    service: WatchHistoryManagementService = Depends(get_watch_history_service),
) -> WatchHistoryListResponse:
    result = await service.get_user_watch_history(
        user_id,
        PaginationParams(page=page, size=page_size),
        include_archived=include_archived,
        include_deleted_channels=include_deleted_channels,
        device=device,
        date_range=_date_range(start, end),
    )
    return WatchHistoryListResponse(
        items=[_item(v) for v in result.items],
        pagination=PaginationMeta(
            page=result.page,
            page_size=result.size,
            total_items=result.total,
            total_pages=result.pages,
            has_next=result.has_next,
        ),
    )


@router.get(
    "/users/{user_id}/watch-history/stats",
    response_model=WatchStatsResponse,
    summary="Viewing statistics over non-archived history",
)
async def get_watch_stats(
    user_id: UserID,
    service: WatchHistoryManagementService = Depends(get_watch_history_service),
) -> WatchStatsResponse:
    return WatchStatsResponse.model_validate(await service.get_user_watch_stats(user_id))


@router.get(
    "/users/{user_id}/watch-history/export",
    response_model=None,
    summary="Export a user's full watch history as JSON or CSV",
    responses={200: {"content": {"application/json": {}, "text/csv": {}}}},
)
async def export_watch_history(
    user_id: UserID,
    format: Literal["json", "csv"] = Query("json"),
    service: WatchHistoryManagementService = Depends(get_watch_history_service),
) -> Response:
    exported = await service.export_user_watch_history(user_id, format)
    filename = f"watch-history-{user_id}.{format}"
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    if format == "csv":
        return PlainTextResponse(exported, media_type="text/csv", headers=headers)
    return JSONResponse(exported, headers=headers)


@router.delete(
    "/users/{user_id}/watch-history",
    response_model=CountResponse,
    response_model_exclude_none=True,
    summary="Clear (delete or archive) a user's watch history",
)
async def clear_watch_history(
    user_id: UserID,
    archive: bool = Query(False, description="Archive instead of deleting."),
    reason: str = Query("user_request", max_length=64),
    service: WatchHistoryManagementService = Depends(get_watch_history_service),
) -> CountResponse:
    return CountResponse(
        **await service.clear_user_watch_history(user_id, archive=archive, reason=reason)
    )


@router.post(
    "/users/{user_id}/watch-history/restore",
    response_model=CountResponse,
    response_model_exclude_none=True,
    summary="Re-link history archived by a channel deletion to a recovered user",
)
async def restore_watch_history(
    user_id: UserID,
    body: RestoreWatchHistoryRequest,
    service: WatchHistoryManagementService = Depends(get_watch_history_service),
) -> CountResponse:
    restored = await service.restore_watch_history_for_channel(body.tombstone_id, user_id)
    return CountResponse(restored=restored)


# ---------------------------------------------------------------------------
# Platform maintenance
# ---------------------------------------------------------------------------


@router.post(
    "/watch-history/cleanup",
    response_model=CountResponse,
    response_model_exclude_none=True,
    summary="Archive history that points at deleted videos",
)
async def cleanup_deleted_videos(
    service: WatchHistoryManagementService = Depends(get_watch_history_service),
) -> CountResponse:
    return CountResponse(archived=await service.cleanup_deleted_videos())


@router.get(
    "/watch-history/deleted-channel-analytics",
    response_model=DeletedChannelAnalyticsResponse,
    summary="Aggregate viewing of content from deleted channels",
)
async def deleted_channel_analytics(
    service: WatchHistoryManagementService = Depends(get_watch_history_service),
) -> DeletedChannelAnalyticsResponse:
    return DeletedChannelAnalyticsResponse.model_validate(
        await service.get_deleted_channel_analytics()
    )
