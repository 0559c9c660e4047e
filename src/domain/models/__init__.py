from domain.models.content import (
    Comment,
    ContentKind,
    ContentRef,
    OwnedContent,
    Playlist,
    Tweet,
    Video,
)
from domain.models.engagement import Engagement, EngagementType
from domain.models.retention import (
    DEFAULT_RETENTION_POLICY,
    ContentClass,
    DataRetentionPolicy,
    DeletionReason,
    RetentionAction,
)
from domain.models.subscription import Subscription, SubscriptionStatus
from domain.models.tombstone import ChannelStats, ChannelTombstone, DeletionStats
from domain.models.user import User
from domain.models.watch_history import (
    WatchAggregate,
    WatchDevice,
    WatchHistory,
    WatchHistoryMetadata,
)

__all__ = [
    "DEFAULT_RETENTION_POLICY",
    "ChannelStats",
    "ChannelTombstone",
    "Comment",
    "ContentClass",
    "ContentKind",
    "ContentRef",
    "DataRetentionPolicy",
    "DeletionReason",
    "DeletionStats",
    "Engagement",
    "EngagementType",
    "OwnedContent",
    "Playlist",
    "RetentionAction",
    "Subscription",
    "SubscriptionStatus",
    "Tweet",
    "User",
    "Video",
    "WatchAggregate",
    "WatchDevice",
    "WatchHistory",
    "WatchHistoryMetadata",
]
