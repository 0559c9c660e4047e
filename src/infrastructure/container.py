"""Dependency injection container for the channel lifecycle service.

Wires the storage adapters and application services together, exposing
factory functions suitable for FastAPI's ``Depends()`` system.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncEngine

from application.ports import UnitOfWork
from application.services.channel_deletion import ChannelDeletionOrchestrator
from application.services.channel_recovery import ChannelRecoveryService
from application.services.content_retention import ContentRetentionProcessor
from application.services.subscription_fanout import SubscriptionFanoutProcessor
from application.services.watch_history_retention import WatchHistoryRetentionProcessor
from application.services.watch_history_service import WatchHistoryManagementService
from infrastructure.adapters import InMemoryUnitOfWork
from infrastructure.database.engine import build_async_engine, build_session_factory
from infrastructure.database.unit_of_work import SqlAlchemyUnitOfWork
from infrastructure.settings import AppSettings, get_settings

logger = logging.getLogger(__name__)


class ServiceContainer:
    """Central DI container that owns all service instances."""

    def __init__(
        self,
        settings: AppSettings | None = None,
        uow: UnitOfWork | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._engine: AsyncEngine | None = None

        # Storage
        if uow is None:
            uow = self._build_unit_of_work()
        self.uow = uow

        # Processors
        self.subscription_processor = SubscriptionFanoutProcessor(
            batch_size=self.settings.subscription_batch_size
        )
        self.content_processor = ContentRetentionProcessor()
        self.watch_history_processor = WatchHistoryRetentionProcessor()

        # Application services
        self.deletion_service = ChannelDeletionOrchestrator(
            uow=self.uow,
            subscription_processor=self.subscription_processor,
            content_processor=self.content_processor,
            watch_history_processor=self.watch_history_processor,
            recovery_window=timedelta(days=self.settings.recovery_window_days),
        )
        self.recovery_service = ChannelRecoveryService(uow=self.uow)
        self.watch_history_service = WatchHistoryManagementService(uow=self.uow)

        logger.info(
            "ServiceContainer initialized (storage=%s, batch_size=%d)",
            self.settings.storage_backend,
            self.subscription_processor.batch_size,
        )

    def _build_unit_of_work(self) -> UnitOfWork:
        backend = self.settings.storage_backend.lower()
        if backend == "postgres":
            self._engine = build_async_engine(self.settings.database_settings())
            return SqlAlchemyUnitOfWork(build_session_factory(self._engine))
        if backend == "memory":
            return InMemoryUnitOfWork()
        raise ValueError(f"Unknown storage backend: {self.settings.storage_backend}")

    async def dispose(self) -> None:
        """Close pooled database connections (no-op for in-memory storage)."""
        if self._engine is not None:
            await self._engine.dispose()


# Module-level singleton
_container: ServiceContainer | None = None


def get_container() -> ServiceContainer:
    """Return the global container singleton."""
    global _container
    if _container is None:
        _container = ServiceContainer()
    return _container


def set_container(container: ServiceContainer) -> None:
    """Install a pre-built container (tests, custom wiring)."""
    global _container
    _container = container


def reset_container() -> None:
    """Reset the global container (for testing)."""
    global _container
    _container = None


# ---------------------------------------------------------------------------
# FastAPI dependency factories
# ---------------------------------------------------------------------------


def get_deletion_service() -> ChannelDeletionOrchestrator:
    return get_container().deletion_service


def get_recovery_service() -> ChannelRecoveryService:
    return get_container().recovery_service


def get_watch_history_service() -> WatchHistoryManagementService:
    return get_container().watch_history_service
