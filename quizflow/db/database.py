"""
Database Module

Async SQLAlchemy engine, session factory and declarative base.
"""

import logging
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from quizflow.core.config import settings

logger = logging.getLogger(__name__)


def _engine_kwargs() -> dict:
    kwargs = {
        "echo": settings.SQLALCHEMY_ECHO,
        "pool_pre_ping": True,
    }
    # Pool sizing only applies to server databases
    if str(settings.DATABASE_URL).startswith("postgresql"):
        if settings.DB_POOL_MIN_SIZE:
            kwargs["pool_size"] = settings.DB_POOL_MIN_SIZE
        if settings.DB_POOL_MAX_SIZE:
            kwargs["max_overflow"] = max(
                0, settings.DB_POOL_MAX_SIZE - (settings.DB_POOL_MIN_SIZE or 5)
            )
    return kwargs


engine = create_async_engine(str(settings.DATABASE_URL), **_engine_kwargs())

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that yields a database session.

    The session is always closed when the request finishes.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def check_db_connection() -> bool:
    """Return True if the database answers a trivial query."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False
