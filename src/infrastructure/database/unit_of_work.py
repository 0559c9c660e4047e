"""
SQLAlchemy unit of work: one :class:`AsyncSession` transaction per
:meth:`SqlAlchemyUnitOfWork.transaction` block.

The block commits on clean exit and rolls back on any exception.  Lock and
serialization failures reported by PostgreSQL are surfaced as
:class:`~domain.exceptions.TransactionConflictError` so callers (the Celery
deletion task, HTTP clients) can retry.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from domain.exceptions import TransactionConflictError

from .models import PlaylistModel, TweetModel
from .repository import (
    CommentRepository,
    DeletedChannelRepository,
    EngagementRepository,
    OwnedContentRepository,
    SubscriptionRepository,
    UserRepository,
    VideoRepository,
    WatchHistoryRepository,
)

logger = logging.getLogger(__name__)

# serialization_failure, deadlock_detected
_RETRYABLE_SQLSTATES = frozenset({"40001", "40P01"})


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = exc.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


class SqlAlchemyTransactionContext:
    """Repositories bound to one open session."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.users = UserRepository(session)
        self.videos = VideoRepository(session)
        self.comments = CommentRepository(session)
        self.tweets = OwnedContentRepository(session, TweetModel)
        self.playlists = OwnedContentRepository(session, PlaylistModel)
        self.subscriptions = SubscriptionRepository(session)
        self.engagements = EngagementRepository(session)
        self.watch_history = WatchHistoryRepository(session)
        self.tombstones = DeletedChannelRepository(session)


class SqlAlchemyUnitOfWork:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[SqlAlchemyTransactionContext]:
        async with self._session_factory() as session:
            try:
                async with session.begin():
                    yield SqlAlchemyTransactionContext(session)
            except DBAPIError as exc:
                state = _sqlstate(exc)
                if state in _RETRYABLE_SQLSTATES:
                    logger.warning("Transaction aborted by PostgreSQL (sqlstate=%s)", state)
                    raise TransactionConflictError(reason=str(exc.orig)) from exc
                raise
