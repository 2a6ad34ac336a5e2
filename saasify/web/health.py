"""Liveness and database readiness check for ``/api/health``."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select

from saasify.models.database import Tenant

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = structlog.get_logger(__name__)

SERVICE_VERSION = "0.1.0"


async def check_health(engine: AsyncEngine, environment: str) -> dict[str, object]:
    """Report ``healthy`` when the tenancy schema answers a count, else ``degraded``.

    Counting tenants proves both connectivity and that migrations have run.
    """
    started = time.perf_counter()
    try:
        async with engine.connect() as conn:
            await conn.execute(select(func.count()).select_from(Tenant))
    except Exception as exc:
        logger.warning("health_check_db_failed", error=str(exc), error_type=type(exc).__name__)
        return {
            "status": "degraded",
            "version": SERVICE_VERSION,
            "environment": environment,
            "database": "unavailable",
        }

    return {
        "status": "healthy",
        "version": SERVICE_VERSION,
        "environment": environment,
        "database": "connected",
        "database_latency_ms": round((time.perf_counter() - started) * 1000, 1),
    }
