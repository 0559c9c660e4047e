"""
Database configuration for the channel lifecycle service.

Centralises PostgreSQL connection settings, pool tuning parameters, and URL
builders for the synchronous (psycopg2, used by Alembic) and asynchronous
(asyncpg, used by the service) drivers.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


@dataclass(frozen=True)
class DatabaseSettings:
    """Immutable database connection and pool configuration.

    Defaults are suitable for local development; deployments override them
    through :class:`infrastructure.settings.AppSettings`.
    """

    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "videohub"

    # Connection-pool tuning
    POOL_SIZE: int = 20
    MAX_OVERFLOW: int = 10
    POOL_TIMEOUT: int = 30

    SSL_MODE: Optional[str] = None


def get_database_url(settings: Optional[DatabaseSettings] = None) -> str:
    """Build a synchronous ``postgresql+psycopg2://`` DSN for migrations."""
    s = settings or DatabaseSettings()
    url = (
        f"postgresql+psycopg2://{s.POSTGRES_USER}:{s.POSTGRES_PASSWORD}"
        f"@{s.POSTGRES_HOST}:{s.POSTGRES_PORT}/{s.POSTGRES_DB}"
    )
    if s.SSL_MODE:
        url += f"?sslmode={s.SSL_MODE}"
    return url


def get_async_database_url(settings: Optional[DatabaseSettings] = None) -> str:
    """Build an asynchronous ``postgresql+asyncpg://`` DSN.

    Parameters
    ----------
    settings:
        An explicit :class:`DatabaseSettings` instance.  When *None* the
        default settings are used.
    """
    s = settings or DatabaseSettings()
    url = (
        f"postgresql+asyncpg://{s.POSTGRES_USER}:{s.POSTGRES_PASSWORD}"
        f"@{s.POSTGRES_HOST}:{s.POSTGRES_PORT}/{s.POSTGRES_DB}"
    )
    if s.SSL_MODE:
        url += f"?ssl={s.SSL_MODE}"
    return url


@lru_cache(maxsize=1)
def get_default_settings() -> DatabaseSettings:
    """Return a cached default :class:`DatabaseSettings` singleton."""
    return DatabaseSettings()
