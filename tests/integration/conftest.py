"""Integration test fixtures using a PostgreSQL testcontainer."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path
from uuid import UUID, uuid4

import pytest
import pytest_asyncio

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from domain.models import ContentKind, EngagementType, SubscriptionStatus, WatchDevice
from infrastructure.database.models import (
    Base,
    CommentModel,
    EngagementModel,
    PlaylistModel,
    SubscriptionModel,
    TweetModel,
    UserModel,
    VideoModel,
    WatchHistoryModel,
)


@pytest.fixture(scope="session")
def postgres_url():
    """Provide a psycopg2 PostgreSQL URL via testcontainers.

    Skips when Docker is unavailable (CI without Docker).
    """
    try:
        from testcontainers.postgres import PostgresContainer

        with PostgresContainer("postgres:16-alpine") as pg:
            yield pg.get_connection_url()
    except Exception:
        pytest.skip("PostgreSQL testcontainer unavailable")


@pytest.fixture(scope="session")
def async_postgres_url(postgres_url):
    return postgres_url.replace("+psycopg2", "+asyncpg")


@pytest_asyncio.fixture
async def engine(async_postgres_url):
    """Fresh schema per test, created from the ORM metadata."""
    from sqlalchemy.ext.asyncio import create_async_engine

    engine = create_async_engine(async_postgres_url, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    from infrastructure.database.engine import build_session_factory

    return build_session_factory(engine)


@pytest.fixture
def uow(session_factory):
    from infrastructure.database.unit_of_work import SqlAlchemyUnitOfWork

    return SqlAlchemyUnitOfWork(session_factory)


@dataclass
class SeededRows:
    owner_id: UUID
    subscriber_ids: list[UUID]
    video_ids: list[UUID]
    comment_id: UUID
    viewer_history_id: UUID
    owner_history_id: UUID
    other_video_id: UUID


@pytest_asyncio.fixture
async def seeded(session_factory) -> SeededRows:
    """One channel with five subscribers, three published videos and some history."""
    now = datetime.now(UTC)
    owner = UserModel(id=uuid4(), username="alice", full_name="Alice", email="alice@example.com")
    other = UserModel(id=uuid4(), username="bob", full_name="Bob", email="bob@example.com")
    subscribers = [
        UserModel(
            id=uuid4(),
            username=f"fan{i}",
            full_name=f"Fan {i}",
            email=f"fan{i}@example.com",
            subscriber_count=1,
        )
        for i in range(5)
    ]
    videos = [
        VideoModel(id=uuid4(), owner_id=owner.id, owner_name="alice", title=f"Video {i}", views=10)
        for i in range(3)
    ]
    other_video = VideoModel(id=uuid4(), owner_id=other.id, owner_name="bob", title="Bob", views=1)
    comment = CommentModel(
        id=uuid4(), owner_id=owner.id, owner_name="alice", video_id=other_video.id, content="hi"
    )
    viewer_history = WatchHistoryModel(
        id=uuid4(),
        user_id=subscribers[0].id,
        video_id=videos[0].id,
        watch_progress=40.0,
        watch_duration=60.0,
        device=WatchDevice.MOBILE,
        session_id="s-1",
        created_at=now - timedelta(hours=1),
    )
    owner_history = WatchHistoryModel(
        id=uuid4(),
        user_id=owner.id,
        video_id=other_video.id,
        watch_progress=100.0,
        watch_duration=90.0,
        is_completed=True,
        device=WatchDevice.DESKTOP,
    )

    async with session_factory() as session:
        async with session.begin():
            session.add_all([owner, other, *subscribers, *videos, other_video, comment])
            session.add_all(
                SubscriptionModel(id=uuid4(), subscriber_id=s.id, channel_id=owner.id)
                for s in subscribers
            )
            session.add(
                SubscriptionModel(
                    id=uuid4(),
                    subscriber_id=other.id,
                    channel_id=owner.id,
                    status=SubscriptionStatus.CANCELLED,
                )
            )
            session.add_all(
                EngagementModel(
                    id=uuid4(),
                    user_id=s.id,
                    content_kind=ContentKind.VIDEO,
                    content_id=videos[0].id,
                    engagement_type=EngagementType.LIKE,
                )
                for s in subscribers[:2]
            )
            session.add(TweetModel(id=uuid4(), owner_id=owner.id, content="tweet"))
            session.add(PlaylistModel(id=uuid4(), owner_id=owner.id, name="list"))
            session.add_all([viewer_history, owner_history])

    return SeededRows(
        owner_id=owner.id,
        subscriber_ids=[s.id for s in subscribers],
        video_ids=[v.id for v in videos],
        comment_id=comment.id,
        viewer_history_id=viewer_history.id,
        owner_history_id=owner_history.id,
        other_video_id=other_video.id,
    )
