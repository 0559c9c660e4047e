"""Tests for src/infrastructure/settings.py and src/infrastructure/container.py"""

import pytest

from application.services.channel_deletion import ChannelDeletionOrchestrator
from infrastructure import container as container_module
from infrastructure.adapters import InMemoryUnitOfWork
from infrastructure.container import (
    ServiceContainer,
    get_container,
    get_deletion_service,
    get_recovery_service,
    get_watch_history_service,
    reset_container,
    set_container,
)
from infrastructure.database.config import get_async_database_url, get_database_url
from infrastructure.database.unit_of_work import SqlAlchemyUnitOfWork
from infrastructure.settings import AppSettings


@pytest.fixture(autouse=True)
def _clean_container():
    reset_container()
    yield
    reset_container()


class TestAppSettings:
    def test_defaults(self):
        settings = AppSettings()
        assert settings.storage_backend == "memory"
        assert settings.subscription_batch_size == 10_000
        assert settings.recovery_window_days == 30

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("APP_SUBSCRIPTION_BATCH_SIZE", "500")
        monkeypatch.setenv("APP_RECOVERY_WINDOW_DAYS", "7")
        monkeypatch.setenv("app_log_level", "DEBUG")
        settings = AppSettings()
        assert settings.subscription_batch_size == 500
        assert settings.recovery_window_days == 7
        assert settings.log_level == "DEBUG"

    def test_database_settings_urls(self):
        settings = AppSettings(postgres_host="db", postgres_port=6543, postgres_db="vh")
        db = settings.database_settings()
        assert get_async_database_url(db) == "postgresql+asyncpg://postgres:postgres@db:6543/vh"
        assert get_database_url(db).startswith("postgresql+psycopg2://")


class TestServiceContainer:
    def test_memory_backend(self):
        c = ServiceContainer(settings=AppSettings(storage_backend="memory"))
        assert isinstance(c.uow, InMemoryUnitOfWork)
        assert isinstance(c.deletion_service, ChannelDeletionOrchestrator)

    def test_batch_size_from_settings(self):
        c = ServiceContainer(settings=AppSettings(subscription_batch_size=42))
        assert c.subscription_processor.batch_size == 42

    def test_recovery_window_from_settings(self):
        c = ServiceContainer(settings=AppSettings(recovery_window_days=3))
        assert c.deletion_service._recovery_window.days == 3

    def test_explicit_unit_of_work_wins(self):
        uow = InMemoryUnitOfWork()
        c = ServiceContainer(settings=AppSettings(storage_backend="postgres"), uow=uow)
        assert c.uow is uow

    def test_postgres_backend_builds_sqlalchemy_uow(self):
        c = ServiceContainer(settings=AppSettings(storage_backend="postgres"))
        assert isinstance(c.uow, SqlAlchemyUnitOfWork)

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown storage backend"):
            ServiceContainer(settings=AppSettings(storage_backend="mongo"))

    @pytest.mark.asyncio
    async def test_dispose_without_engine(self):
        await ServiceContainer(settings=AppSettings()).dispose()


class TestContainerSingleton:
    def test_get_container_is_cached(self):
        assert get_container() is get_container()

    def test_set_container(self):
        c = ServiceContainer(settings=AppSettings())
        set_container(c)
        assert get_deletion_service() is c.deletion_service
        assert get_recovery_service() is c.recovery_service
        assert get_watch_history_service() is c.watch_history_service

    def test_reset(self):
        first = get_container()
        reset_container()
        assert container_module._container is None
        assert get_container() is not first
