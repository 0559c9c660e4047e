"""Application settings loaded from environment variables via Pydantic."""

from __future__ import annotations

from pydantic_settings import BaseSettings

from infrastructure.database.config import DatabaseSettings


class AppSettings(BaseSettings):
    """Central configuration for the channel lifecycle service."""

    model_config = {"env_prefix": "APP_", "case_sensitive": False}

    service_name: str = "videohub-channels"

    # Database
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    postgres_db: str = "videohub"
    db_pool_size: int = 20
    db_max_overflow: int = 10
    # "postgres" for deployments; "memory" wires the in-memory adapters.
    storage_backend: str = "memory"

    # Redis / Celery
    redis_url: str = "redis://localhost:6379/0"
    celery_broker_url: str = "redis://localhost:6379/1"
    celery_result_backend: str = "redis://localhost:6379/2"

    # Channel lifecycle
    subscription_batch_size: int = 10_000
    recovery_window_days: int = 30
    tombstone_sweep_interval_seconds: int = 3600
    video_cleanup_interval_seconds: int = 86_400

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # CORS
    cors_origins: str = "*"

    def database_settings(self) -> DatabaseSettings:
        return DatabaseSettings(
            POSTGRES_HOST=self.postgres_host,
            POSTGRES_PORT=self.postgres_port,
            POSTGRES_USER=self.postgres_user,
            POSTGRES_PASSWORD=self.postgres_password,
            POSTGRES_DB=self.postgres_db,
            POOL_SIZE=self.db_pool_size,
            MAX_OVERFLOW=self.db_max_overflow,
        )


def get_settings() -> AppSettings:
    """Return the application settings singleton."""
    return AppSettings()
