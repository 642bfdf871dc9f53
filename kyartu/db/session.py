"""Async session management for the local fallback database.

The fallback store is a single SQLite file next to the process, so the
engine uses SQLAlchemy's default pool and no driver-specific arguments.
"""

from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from kyartu.core.config import get_settings
from kyartu.core.logging import get_logger

logger = get_logger(__name__)

# Global engine and session factory
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Get or create the async database engine."""
    global _engine

    if _engine is None:
        settings = get_settings()
        engine_kwargs: dict[str, Any] = {
            "echo": settings.db_echo,
            "pool_pre_ping": True,
        }
        _engine = create_async_engine(settings.fallback_database_url, **engine_kwargs)
        logger.info("Fallback database engine created", url=settings.fallback_database_url)

    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the async session factory."""
    global _session_factory

    if _session_factory is None:
        _session_factory = async_sessionmaker(
            bind=get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autocommit=False,
            autoflush=False,
        )

    return _session_factory


async def init_db() -> None:
    """Create the fallback tables if they don't exist.

    For managed deployments, use Alembic migrations instead.
    """
    from kyartu.db.models import Base

    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Fallback database tables initialized")


async def close_db() -> None:
    """Close database connections and dispose of the engine."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
        logger.info("Fallback database connections closed")
