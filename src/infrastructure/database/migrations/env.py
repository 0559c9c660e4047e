"""Alembic environment configuration.

The URL comes from ``DATABASE_URL`` when set, otherwise it is built from the
``APP_POSTGRES_*`` settings.
Usage: ``alembic upgrade head``
"""

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from infrastructure.database.config import get_database_url
from infrastructure.database.models import Base
from infrastructure.settings import get_settings

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

db_url = os.environ.get("DATABASE_URL") or get_database_url(get_settings().database_settings())

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode: generates SQL script."""
    context.configure(
        url=db_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode: connects to database."""
    connectable = create_engine(db_url, poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
