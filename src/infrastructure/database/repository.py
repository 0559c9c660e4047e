"""
Repository implementations of the application storage ports.

Each repository operates through an injected :class:`AsyncSession` that is
already inside a transaction opened by
:class:`infrastructure.database.unit_of_work.SqlAlchemyUnitOfWork`; none of
them commit.  Bulk mutations are issued as single set-based statements so
the cost of a channel deletion does not grow with round trips.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
from typing import Optional

from sqlalchemy import String, and_, any_, case, cast, delete, func, literal, or_, select, update
from sqlalchemy.dialects.postgresql import ARRAY, UUID
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from application.ports import WatchHistoryFilter
from domain.exceptions import ChannelAlreadyDeletedError, UserAlreadyExistsError
from domain.models import (
    ChannelStats,
    ChannelTombstone,
    Comment,
    ContentKind,
    ContentRef,
    DataRetentionPolicy,
    DeletionStats,
    EngagementType,
    SubscriptionStatus,
    User,
    Video,
    WatchAggregate,
    WatchDevice,
    WatchHistory,
    WatchHistoryMetadata,
)
from domain.models.content import ANONYMOUS_OWNER_NAME, DELETED_CHANNEL_MARKER

from .models import (
    CommentModel,
    DeletedChannelModel,
    EngagementModel,
    PlaylistModel,
    SubscriptionModel,
    TweetModel,
    UserModel,
    VideoModel,
    WatchHistoryModel,
)

LIVE_TOMBSTONE_INDEX = "uq_deleted_channels_live_original_user"


def _any_id(ids: Iterable[uuid.UUID]):
    """Match against a whole id set bound as one ``uuid[]`` parameter."""
    return any_(literal(list(ids), ARRAY(UUID(as_uuid=True))))


def _marker_expression():
    """Per-row ``[Deleted Channel] <hex>`` evaluated inside PostgreSQL."""
    return func.concat(
        DELETED_CHANNEL_MARKER + " ",
        func.replace(cast(func.gen_random_uuid(), String), "-", ""),
    )


# =========================================================================
# Row <-> domain mapping
# =========================================================================

def _user_to_domain(row: UserModel) -> User:
    return User(
        id=row.id,
        username=row.username,
        full_name=row.full_name,
        email=row.email,
        avatar=row.avatar,
        cover_image=row.cover_image,
        subscriber_count=row.subscriber_count,
        video_count=row.video_count,
        total_views=row.total_views,
        is_admin=row.is_admin,
        created_at=row.created_at,
    )


def _video_to_domain(row: VideoModel) -> Video:
    return Video(
        id=row.id,
        owner_id=row.owner_id,
        owner_name=row.owner_name,
        title=row.title,
        description=row.description,
        duration=row.duration,
        views=row.views,
        is_published=row.is_published,
        category=row.category,
        tags=list(row.tags or []),
        created_at=row.created_at,
    )


def _comment_to_domain(row: CommentModel) -> Comment:
    return Comment(
        id=row.id,
        owner_id=row.owner_id,
        owner_name=row.owner_name,
        video_id=row.video_id,
        content=row.content,
        is_hidden=row.is_hidden,
        created_at=row.created_at,
    )


def _watch_to_domain(row: WatchHistoryModel) -> WatchHistory:
    return WatchHistory(
        id=row.id,
        user_id=row.user_id,
        video_id=row.video_id,
        watch_progress=row.watch_progress,
        watch_duration=row.watch_duration,
        is_completed=row.is_completed,
        liked=row.liked,
        device=row.device,
        session_id=row.session_id,
        referrer=row.referrer,
        archived=row.archived,
        archived_at=row.archived_at,
        archived_reason=row.archived_reason,
        metadata=WatchHistoryMetadata(
            deleted_channel=row.deleted_channel,
            original_video_id=row.original_video_id,
            original_user_id=row.original_user_id,
            tombstone_id=row.tombstone_id,
        ),
        created_at=row.created_at,
    )


def _tombstone_to_domain(row: DeletedChannelModel) -> ChannelTombstone:
    return ChannelTombstone(
        id=row.id,
        original_user_id=row.original_user_id,
        username=row.username,
        full_name=row.full_name,
        email=row.email,
        stats=ChannelStats(
            subscriber_count=row.stats_subscriber_count,
            video_count=row.stats_video_count,
            total_views=row.stats_total_views,
            total_likes=row.stats_total_likes,
            total_comments=row.stats_total_comments,
        ),
        deletion_reason=row.deletion_reason,
        deleted_by=row.deleted_by,
        deleted_at=row.deleted_at,
        recovery_deadline=row.recovery_deadline,
        is_recoverable=row.is_recoverable,
        data_retention=DataRetentionPolicy.from_options(row.data_retention),
        recovered_at=row.recovered_at,
        recovered_user_id=row.recovered_user_id,
    )


# =========================================================================
# UserRepository
# =========================================================================

class UserRepository:
    """Channel owners and viewers (``users``)."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, user_id: uuid.UUID, *, for_update: bool = False) -> Optional[User]:
        stmt = select(UserModel).where(UserModel.id == user_id)
        if for_update:
            stmt = stmt.with_for_update()
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _user_to_domain(row) if row is not None else None

    async def find_identity_conflict(self, username: str, email: str) -> Optional[str]:
        row = (
            await self._session.execute(
                select(UserModel.username, UserModel.email)
                .where(or_(UserModel.username == username, UserModel.email == email))
                .limit(1)
            )
        ).first()
        if row is None:
            return None
        return "username" if row.username == username else "email"

    async def create(self, user: User) -> User:
        existing = await self._session.get(UserModel, user.id)
        if existing is not None:
            raise UserAlreadyExistsError(user_id=str(user.id))
        row = UserModel(
            id=user.id,
            username=user.username,
            full_name=user.full_name,
            email=user.email,
            avatar=user.avatar,
            cover_image=user.cover_image,
            subscriber_count=user.subscriber_count,
            video_count=user.video_count,
            total_views=user.total_views,
            is_admin=user.is_admin,
            created_at=user.created_at,
        )
        self._session.add(row)
        await self._session.flush()
        return _user_to_domain(row)

    async def set_subscriber_counts(self, counts: Mapping[uuid.UUID, int]) -> int:
        if not counts:
            return 0
        present = set(
            (
                await self._session.execute(
                    select(UserModel.id).where(UserModel.id == _any_id(counts))
                )
            ).scalars()
        )
        rows = [{"id": uid, "subscriber_count": counts[uid]} for uid in present]
        if rows:
            # ORM bulk UPDATE by primary key: one executemany round trip.
            await self._session.execute(update(UserModel), rows)
        return len(rows)

    async def delete(self, user_id: uuid.UUID) -> bool:
        result = await self._session.execute(delete(UserModel).where(UserModel.id == user_id))
        return result.rowcount > 0


# =========================================================================
# Content repositories
# =========================================================================

class VideoRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_ids_by_owner(self, owner_id: uuid.UUID) -> list[uuid.UUID]:
        result = await self._session.execute(
            select(VideoModel.id).where(VideoModel.owner_id == owner_id)
        )
        return list(result.scalars())

    async def get_many(self, video_ids: Sequence[uuid.UUID]) -> dict[uuid.UUID, Video]:
        if not video_ids:
            return {}
        result = await self._session.execute(
            select(VideoModel).where(VideoModel.id == _any_id(video_ids))
        )
        return {row.id: _video_to_domain(row) for row in result.scalars()}

    async def existing_ids(self, video_ids: Sequence[uuid.UUID]) -> set[uuid.UUID]:
        if not video_ids:
            return set()
        result = await self._session.execute(
            select(VideoModel.id).where(VideoModel.id == _any_id(video_ids))
        )
        return set(result.scalars())

    async def count_published_by_owner(self, owner_id: uuid.UUID) -> int:
        result = await self._session.execute(
            select(func.count())
            .select_from(VideoModel)
            .where(and_(VideoModel.owner_id == owner_id, VideoModel.is_published.is_(True)))
        )
        return int(result.scalar_one())

    async def sum_views_by_owner(self, owner_id: uuid.UUID) -> int:
        result = await self._session.execute(
            select(func.coalesce(func.sum(VideoModel.views), 0)).where(
                VideoModel.owner_id == owner_id
            )
        )
        return int(result.scalar_one())

    async def delete_by_owner(self, owner_id: uuid.UUID) -> int:
        result = await self._session.execute(
            delete(VideoModel).where(VideoModel.owner_id == owner_id)
        )
        return result.rowcount

    async def archive_by_owner(self, owner_id: uuid.UUID) -> int:
        result = await self._session.execute(
            update(VideoModel)
            .where(VideoModel.owner_id == owner_id)
            .values(owner_id=None, is_published=False, title=_marker_expression())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def anonymize_by_owner(self, owner_id: uuid.UUID) -> int:
        result = await self._session.execute(
            update(VideoModel)
            .where(VideoModel.owner_id == owner_id)
            .values(owner_id=None, owner_name=ANONYMOUS_OWNER_NAME)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount


class CommentRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_ids_by_owner(self, owner_id: uuid.UUID) -> list[uuid.UUID]:
        result = await self._session.execute(
            select(CommentModel.id).where(CommentModel.owner_id == owner_id)
        )
        return list(result.scalars())

    async def get_by_id(self, comment_id: uuid.UUID) -> Optional[Comment]:
        row = await self._session.get(CommentModel, comment_id)
        return _comment_to_domain(row) if row is not None else None

    async def count_by_owner(self, owner_id: uuid.UUID) -> int:
        result = await self._session.execute(
            select(func.count()).select_from(CommentModel).where(CommentModel.owner_id == owner_id)
        )
        return int(result.scalar_one())

    async def delete_by_owner(self, owner_id: uuid.UUID) -> int:
        result = await self._session.execute(
            delete(CommentModel).where(CommentModel.owner_id == owner_id)
        )
        return result.rowcount

    async def archive_by_owner(self, owner_id: uuid.UUID) -> int:
        result = await self._session.execute(
            update(CommentModel)
            .where(CommentModel.owner_id == owner_id)
            .values(owner_id=None, is_hidden=True, content=_marker_expression())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def anonymize_by_owner(self, owner_id: uuid.UUID) -> int:
        result = await self._session.execute(
            update(CommentModel)
            .where(CommentModel.owner_id == owner_id)
            .values(owner_id=None, owner_name=ANONYMOUS_OWNER_NAME)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount


class OwnedContentRepository:
    """Tweets or playlists, depending on the model it is bound to."""

    def __init__(self, session: AsyncSession, model: type[TweetModel] | type[PlaylistModel]) -> None:
        self._session = session
        self._model = model

    async def list_ids_by_owner(self, owner_id: uuid.UUID) -> list[uuid.UUID]:
        result = await self._session.execute(
            select(self._model.id).where(self._model.owner_id == owner_id)
        )
        return list(result.scalars())

    async def delete_by_owner(self, owner_id: uuid.UUID) -> int:
        result = await self._session.execute(
            delete(self._model).where(self._model.owner_id == owner_id)
        )
        return result.rowcount


# =========================================================================
# SubscriptionRepository
# =========================================================================

class SubscriptionRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def count_active_for_channel(self, channel_id: uuid.UUID) -> int:
        result = await self._session.execute(
            select(func.count())
            .select_from(SubscriptionModel)
            .where(
                and_(
                    SubscriptionModel.channel_id == channel_id,
                    SubscriptionModel.status == SubscriptionStatus.ACTIVE,
                )
            )
        )
        return int(result.scalar_one())

    async def cancel_active_batch(self, channel_id: uuid.UUID, limit: int) -> list[uuid.UUID]:
        batch = (
            select(SubscriptionModel.id)
            .where(
                and_(
                    SubscriptionModel.channel_id == channel_id,
                    SubscriptionModel.status == SubscriptionStatus.ACTIVE,
                )
            )
            .limit(limit)
            .with_for_update()
        )
        result = await self._session.execute(
            update(SubscriptionModel)
            .where(SubscriptionModel.id.in_(batch.scalar_subquery()))
            .values(status=SubscriptionStatus.CANCELLED, updated_at=func.now())
            .returning(SubscriptionModel.subscriber_id)
            .execution_options(synchronize_session=False)
        )
        return list(result.scalars())

    async def count_active_by_subscriber(
        self, subscriber_ids: Sequence[uuid.UUID]
    ) -> dict[uuid.UUID, int]:
        wanted = set(subscriber_ids)
        if not wanted:
            return {}
        result = await self._session.execute(
            select(SubscriptionModel.subscriber_id, func.count())
            .where(
                and_(
                    SubscriptionModel.subscriber_id == _any_id(wanted),
                    SubscriptionModel.status == SubscriptionStatus.ACTIVE,
                )
            )
            .group_by(SubscriptionModel.subscriber_id)
        )
        counts = {sid: 0 for sid in wanted}
        counts.update({sid: int(n) for sid, n in result.all()})
        return counts


# =========================================================================
# EngagementRepository
# =========================================================================

class EngagementRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @staticmethod
    def _content_clause(refs: Sequence[ContentRef]):
        ids_by_kind: dict[ContentKind, list[uuid.UUID]] = {}
        for ref in refs:
            ids_by_kind.setdefault(ref.kind, []).append(ref.id)
        return or_(
            *(
                and_(
                    EngagementModel.content_kind == kind,
                    EngagementModel.content_id == _any_id(ids),
                )
                for kind, ids in ids_by_kind.items()
            )
        )

    async def count_for_content(
        self, refs: Sequence[ContentRef], engagement_type: EngagementType
    ) -> int:
        if not refs:
            return 0
        result = await self._session.execute(
            select(func.count())
            .select_from(EngagementModel)
            .where(
                and_(
                    self._content_clause(refs),
                    EngagementModel.engagement_type == engagement_type,
                )
            )
        )
        return int(result.scalar_one())

    async def delete_for_content(self, refs: Sequence[ContentRef]) -> int:
        if not refs:
            return 0
        result = await self._session.execute(
            delete(EngagementModel)
            .where(self._content_clause(refs))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def delete_by_user(self, user_id: uuid.UUID) -> int:
        result = await self._session.execute(
            delete(EngagementModel).where(EngagementModel.user_id == user_id)
        )
        return result.rowcount


# =========================================================================
# WatchHistoryRepository
# =========================================================================

class WatchHistoryRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _update(self, *criteria, **values) -> int:
        result = await self._session.execute(
            update(WatchHistoryModel)
            .where(*criteria)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def _delete(self, *criteria) -> int:
        result = await self._session.execute(
            delete(WatchHistoryModel).where(*criteria).execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def delete_by_user(self, user_id: uuid.UUID) -> int:
        return await self._delete(WatchHistoryModel.user_id == user_id)

    async def delete_by_videos(self, video_ids: Sequence[uuid.UUID]) -> int:
        if not video_ids:
            return 0
        return await self._delete(WatchHistoryModel.video_id == _any_id(video_ids))

    async def anonymize_by_user(self, user_id: uuid.UUID) -> int:
        return await self._update(
            WatchHistoryModel.user_id == user_id,
            user_id=None,
            session_id=None,
            device=WatchDevice.UNKNOWN,
            deleted_channel=True,
        )

    async def anonymize_by_videos(self, video_ids: Sequence[uuid.UUID]) -> int:
        if not video_ids:
            return 0
        return await self._update(
            WatchHistoryModel.video_id == _any_id(video_ids),
            video_id=None,
            deleted_channel=True,
        )

    async def archive_by_user(
        self,
        user_id: uuid.UUID,
        *,
        reason: str,
        tombstone_id: Optional[uuid.UUID],
        at: datetime,
    ) -> int:
        # SET expressions see the pre-update row, so user_id is captured first.
        return await self._update(
            WatchHistoryModel.user_id == user_id,
            original_user_id=WatchHistoryModel.user_id,
            user_id=None,
            deleted_channel=True,
            tombstone_id=tombstone_id,
            archived=True,
            archived_at=at,
            archived_reason=reason,
        )

    async def archive_by_videos(
        self,
        video_ids: Sequence[uuid.UUID],
        *,
        reason: str,
        tombstone_id: Optional[uuid.UUID],
        at: datetime,
    ) -> int:
        if not video_ids:
            return 0
        return await self._update(
            WatchHistoryModel.video_id == _any_id(video_ids),
            original_video_id=WatchHistoryModel.video_id,
            video_id=None,
            deleted_channel=True,
            tombstone_id=tombstone_id,
            archived=True,
            archived_at=at,
            archived_reason=reason,
        )

    async def restore_archived(
        self, tombstone_id: uuid.UUID, new_user_id: uuid.UUID, *, reason: str
    ) -> int:
        return await self._update(
            WatchHistoryModel.tombstone_id == tombstone_id,
            WatchHistoryModel.archived.is_(True),
            WatchHistoryModel.archived_reason == reason,
            video_id=func.coalesce(WatchHistoryModel.original_video_id, WatchHistoryModel.video_id),
            user_id=case(
                (WatchHistoryModel.original_user_id.is_not(None), new_user_id),
                else_=WatchHistoryModel.user_id,
            ),
            archived=False,
            archived_at=None,
            archived_reason=None,
            deleted_channel=False,
            original_video_id=None,
            original_user_id=None,
            tombstone_id=None,
        )

    async def list_for_user(
        self,
        user_id: uuid.UUID,
        filters: WatchHistoryFilter,
        offset: int,
        limit: int,
    ) -> tuple[list[WatchHistory], int]:
        criteria = [WatchHistoryModel.user_id == user_id]
        if not filters.include_archived:
            criteria.append(WatchHistoryModel.archived.is_(False))
        if not filters.include_deleted_channels:
            criteria.append(WatchHistoryModel.deleted_channel.is_(False))
        if filters.device is not None:
            criteria.append(WatchHistoryModel.device == filters.device)
        if filters.start is not None:
            criteria.append(WatchHistoryModel.created_at >= filters.start)
        if filters.end is not None:
            criteria.append(WatchHistoryModel.created_at <= filters.end)

        total = (
            await self._session.execute(
                select(func.count()).select_from(WatchHistoryModel).where(*criteria)
            )
        ).scalar_one()
        result = await self._session.execute(
            select(WatchHistoryModel)
            .where(*criteria)
            .order_by(WatchHistoryModel.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return [_watch_to_domain(row) for row in result.scalars()], int(total)

    async def list_all_for_user(self, user_id: uuid.UUID) -> list[WatchHistory]:
        result = await self._session.execute(
            select(WatchHistoryModel)
            .where(WatchHistoryModel.user_id == user_id)
            .order_by(WatchHistoryModel.created_at.desc())
        )
        return [_watch_to_domain(row) for row in result.scalars()]

    async def _aggregate(self, *criteria) -> WatchAggregate:
        records, total_time, avg_progress, completed, liked, from_deleted = (
            await self._session.execute(
                select(
                    func.count(),
                    func.coalesce(func.sum(WatchHistoryModel.watch_duration), 0.0),
                    func.coalesce(func.avg(WatchHistoryModel.watch_progress), 0.0),
                    func.count().filter(WatchHistoryModel.is_completed.is_(True)),
                    func.count().filter(WatchHistoryModel.liked.is_(True)),
                    func.count().filter(WatchHistoryModel.deleted_channel.is_(True)),
                )
                .select_from(WatchHistoryModel)
                .where(*criteria)
            )
        ).one()
        return WatchAggregate(
            records=int(records),
            total_watch_time=float(total_time),
            avg_watch_progress=float(avg_progress),
            completed=int(completed),
            liked=int(liked),
            from_deleted_channels=int(from_deleted),
        )

    async def aggregate_active_for_user(self, user_id: uuid.UUID) -> WatchAggregate:
        return await self._aggregate(
            WatchHistoryModel.user_id == user_id,
            WatchHistoryModel.archived.is_(False),
        )

    async def aggregate_deleted_channel_records(self) -> WatchAggregate:
        return await self._aggregate(WatchHistoryModel.deleted_channel.is_(True))

    async def referenced_video_ids(self) -> set[uuid.UUID]:
        result = await self._session.execute(
            select(WatchHistoryModel.video_id)
            .where(
                and_(
                    WatchHistoryModel.video_id.is_not(None),
                    WatchHistoryModel.archived.is_(False),
                )
            )
            .distinct()
        )
        return set(result.scalars())

    async def archive_missing_videos(
        self, missing_video_ids: Sequence[uuid.UUID], *, reason: str, at: datetime
    ) -> int:
        if not missing_video_ids:
            return 0
        return await self._update(
            WatchHistoryModel.video_id == _any_id(missing_video_ids),
            WatchHistoryModel.archived.is_(False),
            original_video_id=WatchHistoryModel.video_id,
            video_id=None,
            deleted_channel=True,
            archived=True,
            archived_at=at,
            archived_reason=reason,
        )

    async def archive_all_for_user(
        self, user_id: uuid.UUID, *, reason: str, at: datetime
    ) -> int:
        return await self._update(
            WatchHistoryModel.user_id == user_id,
            WatchHistoryModel.archived.is_(False),
            archived=True,
            archived_at=at,
            archived_reason=reason,
        )


# =========================================================================
# DeletedChannelRepository
# =========================================================================

class DeletedChannelRepository:
    """Channel tombstones (``deleted_channels``)."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, tombstone: ChannelTombstone) -> ChannelTombstone:
        row = DeletedChannelModel(
            id=tombstone.id,
            original_user_id=tombstone.original_user_id,
            username=tombstone.username,
            full_name=tombstone.full_name,
            email=tombstone.email,
            stats_subscriber_count=tombstone.stats.subscriber_count,
            stats_video_count=tombstone.stats.video_count,
            stats_total_views=tombstone.stats.total_views,
            stats_total_likes=tombstone.stats.total_likes,
            stats_total_comments=tombstone.stats.total_comments,
            deletion_reason=tombstone.deletion_reason,
            deleted_by=tombstone.deleted_by,
            deleted_at=tombstone.deleted_at,
            recovery_deadline=tombstone.recovery_deadline,
            is_recoverable=tombstone.is_recoverable,
            data_retention=tombstone.data_retention.to_dict(),
        )
        self._session.add(row)
        try:
            await self._session.flush()
        except IntegrityError as exc:
            if LIVE_TOMBSTONE_INDEX in str(exc.orig):
                raise ChannelAlreadyDeletedError(
                    user_id=str(tombstone.original_user_id)
                ) from exc
            raise
        return tombstone

    async def get_by_id(
        self, tombstone_id: uuid.UUID, *, for_update: bool = False
    ) -> Optional[ChannelTombstone]:
        stmt = select(DeletedChannelModel).where(DeletedChannelModel.id == tombstone_id)
        if for_update:
            stmt = stmt.with_for_update()
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _tombstone_to_domain(row) if row is not None else None

    async def mark_consumed(
        self,
        tombstone_id: uuid.UUID,
        *,
        at: datetime,
        recovered_user_id: Optional[uuid.UUID],
    ) -> bool:
        result = await self._session.execute(
            update(DeletedChannelModel)
            .where(
                and_(
                    DeletedChannelModel.id == tombstone_id,
                    DeletedChannelModel.is_recoverable.is_(True),
                )
            )
            .values(is_recoverable=False, recovered_at=at, recovered_user_id=recovered_user_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def list_recent(
        self,
        *,
        recoverable: Optional[bool],
        offset: int,
        limit: int,
    ) -> tuple[list[ChannelTombstone], int]:
        criteria = []
        if recoverable is not None:
            criteria.append(DeletedChannelModel.is_recoverable.is_(recoverable))

        total = (
            await self._session.execute(
                select(func.count()).select_from(DeletedChannelModel).where(*criteria)
            )
        ).scalar_one()
        result = await self._session.execute(
            select(DeletedChannelModel)
            .where(*criteria)
            .order_by(DeletedChannelModel.deleted_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return [_tombstone_to_domain(row) for row in result.scalars()], int(total)

    async def aggregate_stats(self) -> DeletionStats:
        result = await self._session.execute(
            select(
                func.count(DeletedChannelModel.id),
                func.coalesce(func.sum(DeletedChannelModel.stats_subscriber_count), 0),
                func.coalesce(func.sum(DeletedChannelModel.stats_video_count), 0),
                func.coalesce(func.sum(DeletedChannelModel.stats_total_views), 0),
            )
        )
        channels, subscribers, videos, views = result.one()
        return DeletionStats(
            total_deleted_channels=int(channels),
            total_subscribers_affected=int(subscribers),
            total_videos_affected=int(videos),
            total_views_affected=int(views),
        )

    async def expire_overdue(self, now: datetime) -> int:
        result = await self._session.execute(
            update(DeletedChannelModel)
            .where(
                and_(
                    DeletedChannelModel.is_recoverable.is_(True),
                    DeletedChannelModel.recovery_deadline < now,
                )
            )
            .values(is_recoverable=False)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def purge_expired(self, now: datetime) -> int:
        result = await self._session.execute(
            delete(DeletedChannelModel)
            .where(
                and_(
                    DeletedChannelModel.is_recoverable.is_(False),
                    DeletedChannelModel.recovery_deadline < now,
                )
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
