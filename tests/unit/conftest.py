"""Shared fixtures for unit tests."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path
from uuid import UUID

import pytest

# Ensure src is importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from application.services.channel_deletion import ChannelDeletionOrchestrator
from application.services.channel_recovery import ChannelRecoveryService
from application.services.content_retention import ContentRetentionProcessor
from application.services.subscription_fanout import SubscriptionFanoutProcessor
from application.services.watch_history_retention import WatchHistoryRetentionProcessor
from application.services.watch_history_service import WatchHistoryManagementService
from domain.models import (
    Comment,
    ContentRef,
    Engagement,
    EngagementType,
    Playlist,
    Subscription,
    SubscriptionStatus,
    Tweet,
    User,
    Video,
    WatchDevice,
    WatchHistory,
)
from infrastructure.adapters import InMemoryDatabase, InMemoryUnitOfWork

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


@dataclass
class SeededChannel:
    """Ids of the canonical channel scenario planted by :func:`seed_channel`."""

    owner: User
    other: User
    subscribers: list[User]
    published_video_ids: list[UUID]
    unpublished_video_id: UUID
    other_video_id: UUID
    comment_ids: list[UUID]
    other_comment_id: UUID
    tweet_ids: list[UUID]
    other_tweet_id: UUID
    playlist_id: UUID
    other_playlist_id: UUID
    surviving_engagement_id: UUID
    viewer_history_ids: list[UUID] = field(default_factory=list)
    owner_history_id: UUID | None = None
    unrelated_history_id: UUID | None = None

    @property
    def owner_video_ids(self) -> list[UUID]:
        return [*self.published_video_ids, self.unpublished_video_id]


def seed_channel(db: InMemoryDatabase, *, at: datetime = NOW) -> SeededChannel:
    """Plant a channel with 3 active subscribers and 5 published videos (100 views).

    Alongside the owner ("alice") there is an unrelated channel ("bob") whose
    content must survive the deletion untouched.
    """

    owner = User(
        username="alice",
        full_name="Alice Channel",
        email="alice@example.com",
        subscriber_count=3,
        video_count=5,
        total_views=100,
        created_at=at,
    )
    other = User(username="bob", full_name="Bob Channel", email="bob@example.com", subscriber_count=1)
    subscribers = [
        User(username=f"viewer{i}", full_name=f"Viewer {i}", email=f"viewer{i}@example.com")
        for i in range(3)
    ]
    for user in (owner, other, *subscribers):
        db.users[user.id] = user

    # viewer0 also follows bob, so its recomputed count stays at 1.
    edges = [Subscription(subscriber_id=s.id, channel_id=owner.id) for s in subscribers]
    edges.append(Subscription(subscriber_id=subscribers[0].id, channel_id=other.id))
    edges.append(
        Subscription(
            subscriber_id=other.id, channel_id=owner.id, status=SubscriptionStatus.CANCELLED
        )
    )
    for edge in edges:
        db.subscriptions[edge.id] = edge
    for sub in subscribers:
        sub.subscriber_count = sum(
            1
            for e in edges
            if e.subscriber_id == sub.id and e.status is SubscriptionStatus.ACTIVE
        )

    published = [
        Video(owner_id=owner.id, owner_name="alice", title=f"Video {i}", views=20, created_at=at)
        for i in range(5)
    ]
    unpublished = Video(owner_id=owner.id, owner_name="alice", title="Draft", is_published=False)
    other_video = Video(owner_id=other.id, owner_name="bob", title="Bob's video", views=7)
    for video in (*published, unpublished, other_video):
        db.videos[video.id] = video

    comments = [
        Comment(owner_id=owner.id, owner_name="alice", video_id=other_video.id, content=f"nice {i}")
        for i in range(2)
    ]
    other_comment = Comment(
        owner_id=other.id, owner_name="bob", video_id=published[0].id, content="great"
    )
    for comment in (*comments, other_comment):
        db.comments[comment.id] = comment

    tweets = [Tweet(owner_id=owner.id, content=f"tweet {i}") for i in range(2)]
    other_tweet = Tweet(owner_id=other.id, content="bob tweets")
    for tweet in (*tweets, other_tweet):
        db.tweets[tweet.id] = tweet

    playlist = Playlist(owner_id=owner.id, name="Favourites", video_ids=[other_video.id])
    other_playlist = Playlist(owner_id=other.id, name="Bob's list", video_ids=[published[0].id])
    db.playlists[playlist.id] = playlist
    db.playlists[other_playlist.id] = other_playlist

    engagements = [
        Engagement(user_id=s.id, content=ContentRef.video(published[0].id)) for s in subscribers
    ]
    engagements.append(
        Engagement(
            user_id=subscribers[1].id,
            content=ContentRef.video(published[1].id),
            engagement_type=EngagementType.DISLIKE,
        )
    )
    engagements.append(Engagement(user_id=other.id, content=ContentRef.comment(comments[0].id)))
    engagements.append(Engagement(user_id=owner.id, content=ContentRef.video(other_video.id)))
    surviving = Engagement(user_id=subscribers[2].id, content=ContentRef.tweet(other_tweet.id))
    engagements.append(surviving)
    for engagement in engagements:
        db.engagements[engagement.id] = engagement

    viewer_history = [
        WatchHistory(
            user_id=subscribers[0].id,
            video_id=published[i].id,
            watch_progress=50.0 + i * 25,
            watch_duration=120.0,
            is_completed=i == 1,
            liked=i == 0,
            device=WatchDevice.MOBILE,
            session_id="sess-viewer0",
            created_at=at - timedelta(hours=i + 1),
        )
        for i in range(2)
    ]
    owner_history = WatchHistory(
        user_id=owner.id,
        video_id=other_video.id,
        watch_progress=100.0,
        watch_duration=300.0,
        is_completed=True,
        device=WatchDevice.DESKTOP,
        session_id="sess-owner",
        created_at=at - timedelta(days=1),
    )
    unrelated = WatchHistory(
        user_id=subscribers[1].id,
        video_id=other_video.id,
        watch_progress=10.0,
        watch_duration=30.0,
        device=WatchDevice.TV,
        created_at=at - timedelta(days=2),
    )
    for record in (*viewer_history, owner_history, unrelated):
        db.watch_history[record.id] = record

    return SeededChannel(
        owner=owner,
        other=other,
        subscribers=subscribers,
        published_video_ids=[v.id for v in published],
        unpublished_video_id=unpublished.id,
        other_video_id=other_video.id,
        comment_ids=[c.id for c in comments],
        other_comment_id=other_comment.id,
        tweet_ids=[t.id for t in tweets],
        other_tweet_id=other_tweet.id,
        playlist_id=playlist.id,
        other_playlist_id=other_playlist.id,
        surviving_engagement_id=surviving.id,
        viewer_history_ids=[r.id for r in viewer_history],
        owner_history_id=owner_history.id,
        unrelated_history_id=unrelated.id,
    )


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def db() -> InMemoryDatabase:
    return InMemoryDatabase()


@pytest.fixture
def uow(db) -> InMemoryUnitOfWork:
    return InMemoryUnitOfWork(db)


@pytest.fixture
def channel(db) -> SeededChannel:
    return seed_channel(db)


@pytest.fixture
def subscription_processor() -> SubscriptionFanoutProcessor:
    return SubscriptionFanoutProcessor()


@pytest.fixture
def content_processor() -> ContentRetentionProcessor:
    return ContentRetentionProcessor()


@pytest.fixture
def watch_history_processor(clock) -> WatchHistoryRetentionProcessor:
    return WatchHistoryRetentionProcessor(clock=clock)


@pytest.fixture
def orchestrator(
    uow, subscription_processor, content_processor, watch_history_processor, clock
) -> ChannelDeletionOrchestrator:
    return ChannelDeletionOrchestrator(
        uow=uow,
        subscription_processor=subscription_processor,
        content_processor=content_processor,
        watch_history_processor=watch_history_processor,
        clock=clock,
    )


@pytest.fixture
def recovery_service(uow, clock) -> ChannelRecoveryService:
    return ChannelRecoveryService(uow=uow, clock=clock)


@pytest.fixture
def watch_history_service(uow, clock) -> WatchHistoryManagementService:
    return WatchHistoryManagementService(uow=uow, clock=clock)
