from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID, uuid4


class SubscriptionStatus(str, enum.Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    CANCELLED = "cancelled"


@dataclass
class Subscription:
    """Edge from ``subscriber_id`` to ``channel_id``; unique per pair."""

    id: UUID = field(default_factory=uuid4)
    subscriber_id: UUID = field(default_factory=uuid4)
    channel_id: UUID = field(default_factory=uuid4)
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))
