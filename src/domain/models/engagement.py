from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID, uuid4

from domain.models.content import ContentKind, ContentRef


class EngagementType(str, enum.Enum):
    LIKE = "like"
    DISLIKE = "dislike"
    LOVE = "love"
    LAUGH = "laugh"
    ANGRY = "angry"
    SAD = "sad"
    WOW = "wow"


@dataclass
class Engagement:
    """A user's single live reaction to one piece of content."""

    id: UUID = field(default_factory=uuid4)
    user_id: UUID = field(default_factory=uuid4)
    content: ContentRef = field(default_factory=lambda: ContentRef(ContentKind.VIDEO, uuid4()))
    engagement_type: EngagementType = EngagementType.LIKE
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
