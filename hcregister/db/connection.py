"""Database connection and session management for HC Register.

Provides the async session used by the backend service, and the sync
engine behind the local durable cache (cache reads never suspend).
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import Engine, create_engine
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from hcregister.config import get_config
from hcregister.db.models import Base

# Global engine instances
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Get or create singleton async engine for the backend document store.

    Returns:
        AsyncEngine: SQLAlchemy async engine
    """
    global _engine

    if _engine is None:
        backend = get_config().backend

        engine_kwargs: dict = {"echo": get_config().storage.echo}

        # SQLite doesn't support connection pooling parameters
        if "sqlite" not in backend.database_url.lower():
            engine_kwargs.update({
                "pool_size": backend.pool_size,
                "max_overflow": backend.pool_max_overflow,
                "pool_pre_ping": True,  # Verify connections before using
                "pool_recycle": 3600,  # Recycle connections after 1 hour
            })

        _engine = create_async_engine(backend.database_url, **engine_kwargs)

    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create session factory."""
    global _session_factory

    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            expire_on_commit=False,  # Don't expire objects after commit
        )

    return _session_factory


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get async database session (context manager).

    Usage:
        async with get_session() as session:
            result = await session.execute(query)

    Commits on clean exit, rolls back and re-raises on error.
    """
    session = get_session_factory()()

    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a session from get_session()."""
    async with get_session() as session:
        yield session


async def init_db() -> None:
    """Create the backend tables (development convenience)."""
    engine = get_engine()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose the backend engine. Call on application shutdown."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None


def create_cache_engine(url: str | None = None) -> Engine:
    """Create a sync engine for the local durable cache and ensure its table.

    Args:
        url: SQLAlchemy URL; defaults to the configured LOCAL_CACHE_URL
    """
    storage = get_config().storage
    engine = create_engine(url or storage.url, echo=storage.echo)
    Base.metadata.create_all(engine, tables=[Base.metadata.tables["local_cache"]])
    return engine
