"""Initial schema: users, owned content, edges, watch history, tombstones.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _id() -> sa.Column:
    return sa.Column(
        "id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")
    )


def _created_at(name: str = "created_at") -> sa.Column:
    return sa.Column(
        name, sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
    )


def upgrade() -> None:
    op.create_table(
        "users",
        _id(),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("avatar", sa.Text(), nullable=False, server_default=""),
        sa.Column("cover_image", sa.Text(), nullable=False, server_default=""),
        sa.Column("subscriber_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("video_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_views", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    # Owned content. owner_id is nullable: archive/anonymize detach content.
    op.create_table(
        "videos",
        _id(),
        sa.Column("owner_id", UUID(as_uuid=True), nullable=True),
        sa.Column("owner_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("duration", sa.Float(), nullable=False, server_default="0"),
        sa.Column("views", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("category", sa.String(50), nullable=False, server_default="Other"),
        sa.Column("tags", JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        _created_at(),
        sa.CheckConstraint("views >= 0", name="ck_videos_views_non_negative"),
    )
    op.create_index("ix_videos_owner_id", "videos", ["owner_id"])
    op.create_index("ix_videos_is_published", "videos", ["is_published"])

    op.create_table(
        "comments",
        _id(),
        sa.Column("owner_id", UUID(as_uuid=True), nullable=True),
        sa.Column("owner_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("video_id", UUID(as_uuid=True), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_hidden", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
    )
    op.create_index("ix_comments_owner_id", "comments", ["owner_id"])
    op.create_index("ix_comments_video_id", "comments", ["video_id"])

    op.create_table(
        "tweets",
        _id(),
        sa.Column("owner_id", UUID(as_uuid=True), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        _created_at(),
    )
    op.create_index("ix_tweets_owner_id", "tweets", ["owner_id"])

    op.create_table(
        "playlists",
        _id(),
        sa.Column("owner_id", UUID(as_uuid=True), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("video_ids", JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        _created_at(),
    )
    op.create_index("ix_playlists_owner_id", "playlists", ["owner_id"])

    # Edges
    op.create_table(
        "subscriptions",
        _id(),
        sa.Column("subscriber_id", UUID(as_uuid=True), nullable=False),
        sa.Column("channel_id", UUID(as_uuid=True), nullable=False),
        sa.Column("status", sa.String(32), nullable=False, server_default="active"),
        _created_at(),
        _created_at("updated_at"),
        sa.UniqueConstraint("subscriber_id", "channel_id", name="uq_subscriptions_pair"),
    )
    op.create_index(
        "ix_subscriptions_channel_status", "subscriptions", ["channel_id", "status"]
    )
    op.create_index(
        "ix_subscriptions_subscriber_status", "subscriptions", ["subscriber_id", "status"]
    )

    op.create_table(
        "engagements",
        _id(),
        sa.Column("user_id", UUID(as_uuid=True), nullable=False),
        sa.Column("content_kind", sa.String(32), nullable=False),
        sa.Column("content_id", UUID(as_uuid=True), nullable=False),
        sa.Column("engagement_type", sa.String(32), nullable=False),
        _created_at(),
        sa.UniqueConstraint(
            "user_id", "content_kind", "content_id", name="uq_engagements_user_content"
        ),
    )
    op.create_index(
        "ix_engagements_content",
        "engagements",
        ["content_kind", "content_id", "engagement_type"],
    )
    op.create_index("ix_engagements_user_id", "engagements", ["user_id"])

    op.create_table(
        "watch_history",
        _id(),
        sa.Column("user_id", UUID(as_uuid=True), nullable=True),
        sa.Column("video_id", UUID(as_uuid=True), nullable=True),
        sa.Column("watch_progress", sa.Float(), nullable=False, server_default="0"),
        sa.Column("watch_duration", sa.Float(), nullable=False, server_default="0"),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("liked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("device", sa.String(32), nullable=False, server_default="unknown"),
        sa.Column("session_id", sa.String(128), nullable=True),
        sa.Column("referrer", sa.String(32), nullable=False, server_default="unknown"),
        sa.Column("archived", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("archived_reason", sa.String(64), nullable=True),
        sa.Column("deleted_channel", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("original_video_id", UUID(as_uuid=True), nullable=True),
        sa.Column("original_user_id", UUID(as_uuid=True), nullable=True),
        sa.Column("tombstone_id", UUID(as_uuid=True), nullable=True),
        _created_at(),
        sa.UniqueConstraint("user_id", "video_id", name="uq_watch_history_user_video"),
        sa.CheckConstraint(
            "watch_progress >= 0 AND watch_progress <= 100",
            name="ck_watch_history_progress_range",
        ),
    )
    op.create_index(
        "ix_watch_history_user_created", "watch_history", ["user_id", "created_at"]
    )
    op.create_index("ix_watch_history_video_id", "watch_history", ["video_id"])
    op.create_index("ix_watch_history_tombstone", "watch_history", ["tombstone_id", "archived"])
    op.create_index("ix_watch_history_deleted_channel", "watch_history", ["deleted_channel"])

    # Tombstones
    op.create_table(
        "deleted_channels",
        _id(),
        sa.Column("original_user_id", UUID(as_uuid=True), nullable=False),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("stats_subscriber_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("stats_video_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("stats_total_views", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("stats_total_likes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("stats_total_comments", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("deletion_reason", sa.String(32), nullable=False, server_default="user_request"),
        sa.Column("deleted_by", UUID(as_uuid=True), nullable=True),
        _created_at("deleted_at"),
        sa.Column("recovery_deadline", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_recoverable", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("data_retention", JSONB, nullable=False),
        sa.Column("recovered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("recovered_user_id", UUID(as_uuid=True), nullable=True),
    )
    # At most one live tombstone per user.
    op.create_index(
        "uq_deleted_channels_live_original_user",
        "deleted_channels",
        ["original_user_id"],
        unique=True,
        postgresql_where=sa.text("is_recoverable"),
    )
    op.create_index(
        "ix_deleted_channels_original_user_id", "deleted_channels", ["original_user_id"]
    )
    op.create_index(
        "ix_deleted_channels_deleted_at", "deleted_channels", [sa.text("deleted_at DESC")]
    )
    op.create_index(
        "ix_deleted_channels_recoverable_deadline",
        "deleted_channels",
        ["is_recoverable", "recovery_deadline"],
    )


def downgrade() -> None:
    op.drop_table("deleted_channels")
    op.drop_table("watch_history")
    op.drop_table("engagements")
    op.drop_table("subscriptions")
    op.drop_table("playlists")
    op.drop_table("tweets")
    op.drop_table("comments")
    op.drop_table("videos")
    op.drop_table("users")
