"""Saved project-list views, private to one user inside one tenant."""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import delete, update
from sqlmodel import col, select

from saasify.models.database import SavedView, _utc_now
from saasify.storage.repositories.base import DatabaseRepository

logger = structlog.get_logger(__name__)


class SavedViewRepository(DatabaseRepository):
    """PostgreSQL-backed saved view store.

    Every statement filters on both ``tenant_id`` and ``user_id`` so a view id
    from another user or tenant behaves exactly like an unknown id.
    """

    async def create(
        self,
        *,
        tenant_id: str,
        user_id: str,
        name: str,
        filters: dict[str, Any],
        is_pinned: bool = False,
    ) -> SavedView:
        async with self._session() as session:
            view = SavedView(
                tenant_id=tenant_id,
                user_id=user_id,
                name=name,
                filters=filters,
                is_pinned=is_pinned,
            )
            session.add(view)
            await session.commit()
        logger.info("saved_view_created", view_id=view.id, tenant_id=tenant_id, user_id=user_id)
        return view

    async def list_for_user(self, tenant_id: str, user_id: str) -> list[SavedView]:
        """Pinned views first, then newest first."""
        async with self._session() as session:
            stmt = (
                select(SavedView)
                .where(col(SavedView.tenant_id) == tenant_id, col(SavedView.user_id) == user_id)
                .order_by(col(SavedView.is_pinned).desc(), col(SavedView.created_at).desc())
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def set_pinned(
        self, tenant_id: str, user_id: str, view_id: str, *, is_pinned: bool
    ) -> SavedView | None:
        stmt = (
            update(SavedView)
            .where(
                col(SavedView.id) == view_id,
                col(SavedView.tenant_id) == tenant_id,
                col(SavedView.user_id) == user_id,
            )
            .values(is_pinned=is_pinned, updated_at=_utc_now())
            .returning(SavedView)
        )
        async with self._session() as session:
            result = await session.execute(stmt, execution_options={"populate_existing": True})
            view = result.scalars().first()
            await session.commit()
        return view

    async def delete(self, tenant_id: str, user_id: str, view_id: str) -> bool:
        """Delete the view; False when it does not exist for this user."""
        stmt = (
            delete(SavedView)
            .where(
                col(SavedView.id) == view_id,
                col(SavedView.tenant_id) == tenant_id,
                col(SavedView.user_id) == user_id,
            )
            .returning(col(SavedView.id))
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            deleted = result.scalar_one_or_none()
            await session.commit()
        if deleted:
            logger.info("saved_view_deleted", view_id=view_id, tenant_id=tenant_id)
        return deleted is not None
