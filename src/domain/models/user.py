from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID, uuid4

DEFAULT_AVATAR_URL = "https://via.placeholder.com/150"


@dataclass
class User:
    """A channel owner / viewer account.

    ``subscriber_count``, ``video_count`` and ``total_views`` are caches of
    values whose source of truth lives in the subscription and video
    collections. They are only written by recomputation routines.
    """

    id: UUID = field(default_factory=uuid4)
    username: str = ""
    full_name: str = ""
    email: str = ""
    avatar: str = DEFAULT_AVATAR_URL
    cover_image: str = ""
    subscriber_count: int = 0
    video_count: int = 0
    total_views: int = 0
    is_admin: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
