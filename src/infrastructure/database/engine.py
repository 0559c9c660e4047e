"""
Async SQLAlchemy engine and session-factory setup with connection pooling.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .config import DatabaseSettings, get_async_database_url, get_default_settings


def build_async_engine(settings: DatabaseSettings | None = None) -> AsyncEngine:
    """Create an asynchronous SQLAlchemy :class:`AsyncEngine`.

    Parameters
    ----------
    settings:
        Database configuration.  Falls back to defaults when *None*.
    """
    s = settings or get_default_settings()
    return create_async_engine(
        get_async_database_url(s),
        pool_size=s.POOL_SIZE,
        max_overflow=s.MAX_OVERFLOW,
        pool_timeout=s.POOL_TIMEOUT,
        pool_pre_ping=True,
        echo=False,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Sessions keep loaded attributes after commit; repositories map rows eagerly."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
