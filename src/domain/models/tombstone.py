from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Optional
from uuid import UUID, uuid4

from domain.models.retention import DataRetentionPolicy, DeletionReason

RECOVERY_WINDOW = timedelta(days=30)


@dataclass(frozen=True)
class ChannelStats:
    """Channel statistics frozen at the moment of deletion."""

    subscriber_count: int = 0
    video_count: int = 0
    total_views: int = 0
    total_likes: int = 0
    total_comments: int = 0


@dataclass
class ChannelTombstone:
    """Recoverable record of a deleted channel.

    Created only by the deletion orchestrator. Afterwards the only permitted
    mutation is consumption (``is_recoverable`` flipped to ``False``) by a
    recovery or by the expiry sweep.
    """

    id: UUID = field(default_factory=uuid4)
    original_user_id: UUID = field(default_factory=uuid4)
    username: str = ""
    full_name: str = ""
    email: str = ""
    stats: ChannelStats = field(default_factory=ChannelStats)
    deletion_reason: DeletionReason = DeletionReason.USER_REQUEST
    deleted_by: Optional[UUID] = None
    deleted_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    recovery_deadline: Optional[datetime] = None
    is_recoverable: bool = True
    data_retention: DataRetentionPolicy = field(default_factory=DataRetentionPolicy)
    recovered_at: Optional[datetime] = None
    recovered_user_id: Optional[UUID] = None

    def __post_init__(self) -> None:
        if self.recovery_deadline is None:
            self.recovery_deadline = self.deleted_at + RECOVERY_WINDOW

    def recovery_blocker(self, now: datetime) -> Optional[str]:
        """Return why this tombstone cannot be recovered at *now*, or ``None``."""
        if not self.is_recoverable:
            return "Channel recovery period has expired"
        if self.recovery_deadline is not None and now > self.recovery_deadline:
            return "Channel recovery deadline has passed"
        return None


@dataclass(frozen=True)
class DeletionStats:
    """Aggregate over every tombstone on record."""

    total_deleted_channels: int = 0
    total_subscribers_affected: int = 0
    total_videos_affected: int = 0
    total_views_affected: int = 0
