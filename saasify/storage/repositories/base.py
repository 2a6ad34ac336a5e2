"""Shared plumbing for the SQLModel-backed repositories."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlmodel.ext.asyncio.session import AsyncSession

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

MAX_PAGE_SIZE = 100


class DatabaseRepository:
    """Holds the engine and hands out sessions whose objects outlive them."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    def _session(self) -> AsyncSession:
        return AsyncSession(self._engine, expire_on_commit=False)


def clamp_page(limit: int | None, offset: int | None, default_limit: int = 12) -> tuple[int, int]:
    """Clamp paging input to 1..MAX_PAGE_SIZE and a non-negative offset."""
    safe_limit = min(max(limit if limit is not None else default_limit, 1), MAX_PAGE_SIZE)
    safe_offset = max(offset or 0, 0)
    return safe_limit, safe_offset


def normalize_id(value: str | None) -> str | None:
    """Return the canonical form of a record id, or None if it is not a valid UUID."""
    if not value:
        return None
    try:
        return str(uuid.UUID(value.strip()))
    except (ValueError, AttributeError, TypeError):
        return None


def is_valid_id(value: str | None) -> bool:
    """Return True when ``value`` is a structurally valid record id (UUID)."""
    return normalize_id(value) is not None
