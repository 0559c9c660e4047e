"""Channel deletion and recovery API endpoints.

Authentication is handled upstream; the ``X-User-ID`` / ``X-Admin-ID``
headers carry the already-authenticated principal.
"""

from __future__ import annotations

import time
import uuid
from typing import Annotated

from fastapi import APIRouter, Body, Depends, Header, Path, Query

from application.schemas.pagination import PaginationParams
from application.services.channel_deletion import ChannelDeletionOrchestrator, DeletionResult
from application.services.channel_recovery import ChannelRecoveryService
from domain.exceptions import DomainException
from domain.models import DeletionReason
from infrastructure.container import get_deletion_service, get_recovery_service
from infrastructure.observability.metrics import (
    channel_deletion_duration_seconds,
    channel_deletions_total,
    channel_recoveries_total,
    outcome_label,
    reason_label,
    subscriptions_cancelled_total,
)

from .schemas import (
    ChannelStatsResponse,
    DeleteChannelRequest,
    DeletionResponse,
    DeletionStatsResponse,
    ErrorResponse,
    PaginationMeta,
    RecoverChannelRequest,
    RecoveryResponse,
    TombstoneListResponse,
    TombstoneResponse,
)

router = APIRouter(prefix="/channels", tags=["Channels"])

TombstoneID = Annotated[uuid.UUID, Path(description="Deleted-channel record identifier.")]
CallerID = Annotated[uuid.UUID, Header(alias="X-User-ID", description="Authenticated user.")]
AdminID = Annotated[uuid.UUID, Header(alias="X-Admin-ID", description="Authenticated admin.")]

_ERRORS = {
    400: {"description": "Invalid reason or retention policy.", "model": ErrorResponse},
    404: {"description": "Channel not found.", "model": ErrorResponse},
    409: {"description": "Concurrent deletion; retry.", "model": ErrorResponse},
}


async def _delete(
    service: ChannelDeletionOrchestrator,
    user_id: uuid.UUID,
    body: DeleteChannelRequest,
    *,
    default_reason: DeletionReason,
    deleted_by: uuid.UUID | None,
) -> DeletionResponse:
    reason = body.reason or default_reason.value
    label = reason_label(reason, default_reason)
    start = time.perf_counter()
    try:
        result: DeletionResult = await service.delete_channel(
            user_id,
            reason,
            deleted_by,
            data_retention=body.data_retention,
            watch_history_retention=body.watch_history_retention,
        )
    except DomainException as exc:
        channel_deletions_total.labels(outcome=outcome_label(exc), reason=label).inc()
        raise

    channel_deletion_duration_seconds.observe(time.perf_counter() - start)
    channel_deletions_total.labels(outcome="success", reason=label).inc()
    subscriptions_cancelled_total.inc(result.stats.subscriber_count)

    return DeletionResponse(
        success=result.success,
        tombstone_id=result.tombstone_id,
        stats=ChannelStatsResponse.from_domain(result.stats),
    )


@router.delete(
    "/me",
    response_model=DeletionResponse,
    summary="Delete the caller's own channel",
    responses=_ERRORS,
)
async def delete_own_channel(
    user_id: CallerID,
    body: Annotated[DeleteChannelRequest | None, Body()] = None,
    service: ChannelDeletionOrchestrator = Depends(get_deletion_service),
) -> DeletionResponse:
    return await _delete(
        service,
        user_id,
        body or DeleteChannelRequest(),
        default_reason=DeletionReason.USER_REQUEST,
        deleted_by=user_id,
    )


@router.delete(
    "/admin/{user_id}",
    response_model=DeletionResponse,
    summary="Delete a channel as an administrator",
    responses=_ERRORS,
)
async def admin_delete_channel(
    admin_id: AdminID,
    user_id: Annotated[uuid.UUID, Path(description="Channel owner to delete.")],
    body: Annotated[DeleteChannelRequest | None, Body()] = None,
    service: ChannelDeletionOrchestrator = Depends(get_deletion_service),
) -> DeletionResponse:
    return await _delete(
        service,
        user_id,
        body or DeleteChannelRequest(),
        default_reason=DeletionReason.POLICY_VIOLATION,
        deleted_by=admin_id,
    )


@router.post(
    "/recover/{tombstone_id}",
    response_model=RecoveryResponse,
    summary="Recover a deleted channel within its recovery window",
    responses={
        400: {"description": "Not recoverable or missing new_user_id.", "model": ErrorResponse},
        404: {"description": "Deleted-channel record not found.", "model": ErrorResponse},
        409: {"description": "Target user id already exists.", "model": ErrorResponse},
    },
)
async def recover_channel(
    tombstone_id: TombstoneID,
    body: RecoverChannelRequest,
    service: ChannelRecoveryService = Depends(get_recovery_service),
) -> RecoveryResponse:
    try:
        result = await service.recover_channel(tombstone_id, body.new_user_id)
    except DomainException as exc:
        channel_recoveries_total.labels(outcome=outcome_label(exc)).inc()
        raise
    channel_recoveries_total.labels(outcome="success").inc()
    return RecoveryResponse(
        success=result.success,
        user_id=result.user_id,
        tombstone_id=result.tombstone_id,
    )


@router.get(
    "/deletion-stats",
    response_model=DeletionStatsResponse,
    summary="Aggregate statistics over deleted channels",
)
async def get_deletion_stats(
    service: ChannelDeletionOrchestrator = Depends(get_deletion_service),
) -> DeletionStatsResponse:
    return DeletionStatsResponse.from_domain(await service.get_deletion_stats())


@router.get(
    "/deleted",
    response_model=TombstoneListResponse,
    summary="List deleted channels, newest first (admin only)",
)
async def list_deleted_channels(
    admin_id: AdminID,
    page: int = Query(1, ge=1, description="Page number."),
    page_size: int = Query(20, ge=1, le=100, description="Items per page."),
    recoverable: bool | None = Query(None, description="Filter on recoverability."),
    service: ChannelDeletionOrchestrator = Depends(get_deletion_service),
) -> TombstoneListResponse:
    result = await service.list_deleted_channels(
        recoverable=recoverable, pagination=PaginationParams(page=page, size=page_size)
    )
    return TombstoneListResponse(
        items=[TombstoneResponse.from_domain(t) for t in result.items],
        pagination=PaginationMeta(
            page=result.page,
            page_size=result.size,
            total_items=result.total,
            total_pages=result.pages,
            has_next=result.has_next,
        ),
    )
