"""Async database engine and one-time schema initialization."""

from __future__ import annotations

import asyncio
from functools import lru_cache

import structlog
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlmodel import SQLModel

from saasify.config.settings import get_settings
from saasify.exceptions import StorageError

logger = structlog.get_logger(__name__)

# In-flight (or finished) schema initialization per engine, shared by concurrent callers
_init_tasks: dict[AsyncEngine, asyncio.Task[None]] = {}


def build_engine(database_url: str, *, echo: bool = False) -> AsyncEngine:
    """Create an async engine with pool options suited to the backend."""
    if database_url.startswith("sqlite"):
        return create_async_engine(database_url, echo=echo)
    return create_async_engine(
        database_url,
        echo=echo,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        pool_recycle=3600,
    )


@lru_cache
def get_engine() -> AsyncEngine:
    """Return a cached async database engine (singleton per process)."""
    settings = get_settings()
    return build_engine(settings.database_url, echo=settings.debug)


async def _create_all(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("db_schema_ready")


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Create all tables once per engine (dev/testing; use Alembic in production).

    Concurrent callers await the same initialization task instead of racing.
    A failed attempt is forgotten so the next caller retries.
    """
    target = engine or get_engine()
    task = _init_tasks.get(target)
    if task is None:
        task = asyncio.ensure_future(_create_all(target))
        _init_tasks[target] = task
    try:
        await asyncio.shield(task)
    except Exception:
        if _init_tasks.get(target) is task:
            del _init_tasks[target]
        raise


async def dispose_engine() -> None:
    """Close pooled connections at process shutdown."""
    _init_tasks.clear()
    if get_engine.cache_info().currsize:
        await get_engine().dispose()
        get_engine.cache_clear()
        logger.info("db_engine_disposed")


def dialect_insert(engine: AsyncEngine, model: type[SQLModel]):  # noqa: ANN201
    """Return an INSERT for ``model`` that supports ``ON CONFLICT`` on this backend."""
    dialect = engine.dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        msg = f"Atomic upsert is not supported on {dialect}"
        raise StorageError(msg)
    return insert(model)
