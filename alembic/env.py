from logging.config import fileConfig
from sqlalchemy import engine_from_config
from sqlalchemy import pool
from alembic import context
import sys
from pathlib import Path

# Make the quizflow package importable when alembic runs from the repo root
sys.path.append(str(Path(__file__).resolve().parents[1]))

from quizflow.core.config import settings
from quizflow.db.database import Base

# Register every model on Base.metadata
from quizflow.models import (  # noqa: F401
    User,
    NotificationPreference,
    Quiz,
    QuizQuestion,
    QuizResult,
    Notification,
)

# ============================================================
# Alembic Config
# ============================================================

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _sync_database_url() -> str:
    """Alembic runs on a synchronous driver; swap out asyncpg."""
    database_url = str(settings.DATABASE_URL)
    if database_url.startswith("postgresql+asyncpg://"):
        database_url = database_url.replace("postgresql+asyncpg://", "postgresql://")
    return database_url


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    context.configure(
        url=_sync_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode against a synchronous engine."""
    connectable = engine_from_config(
        {"sqlalchemy.url": _sync_database_url()},
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection, target_metadata=target_metadata
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
