"""
SQLAlchemy 2.0+ ORM models for the video platform.

Collections
-----------
* ``users``            -- channel owners / viewers with cached counters
* ``videos``, ``comments``, ``tweets``, ``playlists`` -- owned content
* ``subscriptions``    -- subscriber -> channel edges
* ``engagements``      -- polymorphic reactions (``content_kind`` + ``content_id``)
* ``watch_history``    -- viewer -> video edges with deletion markers
* ``deleted_channels`` -- recoverable tombstones

References between collections are plain UUID columns without foreign keys:
cancelled subscriptions and archived history keep pointing at users that no
longer exist.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    Float,
    Index,
    Integer,
    BigInteger,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from domain.models import (
    ContentKind,
    DeletionReason,
    EngagementType,
    SubscriptionStatus,
    WatchDevice,
)


def _values(enum_cls: type) -> list[str]:
    return [member.value for member in enum_cls]


def _enum(enum_cls: type, name: str) -> Enum:
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        create_constraint=False,
        values_callable=_values,
        length=32,
    )


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------

class Base(DeclarativeBase):
    """Shared declarative base for every ORM model."""
    pass


def _uuid_pk() -> Mapped[uuid.UUID]:
    return mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )


def _created_at() -> Mapped[datetime]:
    return mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )


# ---------------------------------------------------------------------------
# UserModel
# ---------------------------------------------------------------------------

class UserModel(Base):
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("username", name="uq_users_username"),
        UniqueConstraint("email", name="uq_users_email"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    avatar: Mapped[str] = mapped_column(Text, nullable=False, default="")
    cover_image: Mapped[str] = mapped_column(Text, nullable=False, default="")
    subscriber_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    video_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_views: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = _created_at()

    def __repr__(self) -> str:
        return f"<User(id={self.id!r}, username={self.username!r})>"


# ---------------------------------------------------------------------------
# Content
# ---------------------------------------------------------------------------

class VideoModel(Base):
    __tablename__ = "videos"
    __table_args__ = (
        Index("ix_videos_owner_id", "owner_id"),
        Index("ix_videos_is_published", "is_published"),
        CheckConstraint("views >= 0", name="ck_videos_views_non_negative"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    owner_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)
    owner_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    duration: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    views: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="Other")
    tags: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    created_at: Mapped[datetime] = _created_at()

    def __repr__(self) -> str:
        return f"<Video(id={self.id!r}, title={self.title!r})>"


class CommentModel(Base):
    __tablename__ = "comments"
    __table_args__ = (
        Index("ix_comments_owner_id", "owner_id"),
        Index("ix_comments_video_id", "video_id"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    owner_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)
    owner_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    video_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_hidden: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = _created_at()


class TweetModel(Base):
    __tablename__ = "tweets"
    __table_args__ = (Index("ix_tweets_owner_id", "owner_id"),)

    id: Mapped[uuid.UUID] = _uuid_pk()
    owner_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = _created_at()


class PlaylistModel(Base):
    __tablename__ = "playlists"
    __table_args__ = (Index("ix_playlists_owner_id", "owner_id"),)

    id: Mapped[uuid.UUID] = _uuid_pk()
    owner_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    video_ids: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    created_at: Mapped[datetime] = _created_at()


# ---------------------------------------------------------------------------
# Edges
# ---------------------------------------------------------------------------

class SubscriptionModel(Base):
    __tablename__ = "subscriptions"
    __table_args__ = (
        UniqueConstraint("subscriber_id", "channel_id", name="uq_subscriptions_pair"),
        Index("ix_subscriptions_channel_status", "channel_id", "status"),
        Index("ix_subscriptions_subscriber_status", "subscriber_id", "status"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    subscriber_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    channel_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    status: Mapped[SubscriptionStatus] = mapped_column(
        _enum(SubscriptionStatus, "subscription_status"),
        nullable=False,
        default=SubscriptionStatus.ACTIVE,
    )
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


class EngagementModel(Base):
    __tablename__ = "engagements"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "content_kind", "content_id", name="uq_engagements_user_content"
        ),
        Index("ix_engagements_content", "content_kind", "content_id", "engagement_type"),
        Index("ix_engagements_user_id", "user_id"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    content_kind: Mapped[ContentKind] = mapped_column(
        _enum(ContentKind, "content_kind"), nullable=False
    )
    content_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    engagement_type: Mapped[EngagementType] = mapped_column(
        _enum(EngagementType, "engagement_type"), nullable=False
    )
    created_at: Mapped[datetime] = _created_at()


class WatchHistoryModel(Base):
    __tablename__ = "watch_history"
    __table_args__ = (
        UniqueConstraint("user_id", "video_id", name="uq_watch_history_user_video"),
        Index("ix_watch_history_user_created", "user_id", "created_at"),
        Index("ix_watch_history_video_id", "video_id"),
        Index("ix_watch_history_tombstone", "tombstone_id", "archived"),
        Index("ix_watch_history_deleted_channel", "deleted_channel"),
        CheckConstraint(
            "watch_progress >= 0 AND watch_progress <= 100",
            name="ck_watch_history_progress_range",
        ),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)
    video_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)
    watch_progress: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    watch_duration: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    liked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    device: Mapped[WatchDevice] = mapped_column(
        _enum(WatchDevice, "watch_device"), nullable=False, default=WatchDevice.UNKNOWN
    )
    session_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    referrer: Mapped[str] = mapped_column(String(32), nullable=False, default="unknown")
    archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    archived_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    archived_reason: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    # Deletion markers (the "metadata" block of the domain record).
    deleted_channel: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    original_video_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), nullable=True
    )
    original_user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), nullable=True
    )
    tombstone_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)
    created_at: Mapped[datetime] = _created_at()


# ---------------------------------------------------------------------------
# DeletedChannelModel
# ---------------------------------------------------------------------------

class DeletedChannelModel(Base):
    """Recoverable tombstone of a deleted channel."""

    __tablename__ = "deleted_channels"
    __table_args__ = (
        Index(
            "uq_deleted_channels_live_original_user",
            "original_user_id",
            unique=True,
            postgresql_where=text("is_recoverable"),
        ),
        Index("ix_deleted_channels_original_user_id", "original_user_id"),
        Index("ix_deleted_channels_deleted_at", text("deleted_at DESC")),
        Index("ix_deleted_channels_recoverable_deadline", "is_recoverable", "recovery_deadline"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    original_user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    stats_subscriber_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    stats_video_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    stats_total_views: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    stats_total_likes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    stats_total_comments: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    deletion_reason: Mapped[DeletionReason] = mapped_column(
        _enum(DeletionReason, "deletion_reason"),
        nullable=False,
        default=DeletionReason.USER_REQUEST,
    )
    deleted_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)
    deleted_at: Mapped[datetime] = _created_at()
    recovery_deadline: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_recoverable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    data_retention: Mapped[dict] = mapped_column(JSONB, nullable=False)
    recovered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    recovered_user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), nullable=True
    )

    def __repr__(self) -> str:
        return (
            f"<DeletedChannel(id={self.id!r}, original_user_id={self.original_user_id!r}, "
            f"recoverable={self.is_recoverable!r})>"
        )
