from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Optional
from uuid import UUID, uuid4

ANONYMOUS_OWNER_NAME = "[Anonymous]"
DELETED_CHANNEL_MARKER = "[Deleted Channel]"


class ContentKind(str, enum.Enum):
    VIDEO = "video"
    COMMENT = "comment"
    TWEET = "tweet"
    PLAYLIST = "playlist"


@dataclass(frozen=True)
class ContentRef:
    """Typed pointer at one piece of content in one specific collection."""

    kind: ContentKind
    id: UUID

    @classmethod
    def video(cls, content_id: UUID) -> ContentRef:
        return cls(ContentKind.VIDEO, content_id)

    @classmethod
    def comment(cls, content_id: UUID) -> ContentRef:
        return cls(ContentKind.COMMENT, content_id)

    @classmethod
    def tweet(cls, content_id: UUID) -> ContentRef:
        return cls(ContentKind.TWEET, content_id)

    @classmethod
    def playlist(cls, content_id: UUID) -> ContentRef:
        return cls(ContentKind.PLAYLIST, content_id)


def tombstone_marker() -> str:
    """Return a unique replacement title/body for archived content."""
    return f"{DELETED_CHANNEL_MARKER} {uuid4().hex}"


@dataclass
class Video:
    id: UUID = field(default_factory=uuid4)
    owner_id: Optional[UUID] = None
    owner_name: str = ""
    title: str = ""
    description: str = ""
    duration: float = 0.0
    views: int = 0
    is_published: bool = True
    category: str = "Other"
    tags: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass
class Comment:
    id: UUID = field(default_factory=uuid4)
    owner_id: Optional[UUID] = None
    owner_name: str = ""
    video_id: Optional[UUID] = None
    content: str = ""
    is_hidden: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass
class Tweet:
    id: UUID = field(default_factory=uuid4)
    owner_id: Optional[UUID] = None
    content: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass
class Playlist:
    id: UUID = field(default_factory=uuid4)
    owner_id: Optional[UUID] = None
    name: str = ""
    description: str = ""
    video_ids: list[UUID] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class OwnedContent:
    """Ids of everything a channel owned, captured before any mutation."""

    video_ids: tuple[UUID, ...] = ()
    comment_ids: tuple[UUID, ...] = ()
    tweet_ids: tuple[UUID, ...] = ()
    playlist_ids: tuple[UUID, ...] = ()

    def refs(self) -> list[ContentRef]:
        return [
            *(ContentRef.video(i) for i in self.video_ids),
            *(ContentRef.comment(i) for i in self.comment_ids),
            *(ContentRef.tweet(i) for i in self.tweet_ids),
            *(ContentRef.playlist(i) for i in self.playlist_ids),
        ]
