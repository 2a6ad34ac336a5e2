"""Tenant-scoped project repository.

Every statement filters on ``tenant_id``; callers pass the tenant id resolved
by the access guards, never one taken from user input. Logically deleted
projects (``deleted_at`` set) are excluded unless a method says otherwise.
"""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import func, or_, update
from sqlmodel import col, select

from saasify.models.database import Project, _utc_now
from saasify.storage.repositories.base import DatabaseRepository, clamp_page
from saasify.types import ProjectStatus

logger = structlog.get_logger(__name__)


class ProjectRepository(DatabaseRepository):
    """PostgreSQL-backed project store using SQLModel."""

    async def create(
        self,
        *,
        tenant_id: str,
        title: str,
        created_by_user_id: str,
        description: str = "",
    ) -> Project:
        async with self._session() as session:
            project = Project(
                tenant_id=tenant_id,
                title=title,
                description=description,
                created_by_user_id=created_by_user_id,
            )
            session.add(project)
            await session.commit()
        logger.info("project_created", project_id=project.id, tenant_id=tenant_id)
        return project

    async def get_scoped(self, tenant_id: str, project_id: str) -> Project | None:
        async with self._session() as session:
            stmt = select(Project).where(
                col(Project.id) == project_id,
                col(Project.tenant_id) == tenant_id,
                col(Project.deleted_at).is_(None),
            )
            result = await session.execute(stmt)
            return result.scalars().first()

    async def list_scoped(
        self,
        tenant_id: str,
        *,
        status: ProjectStatus | None = None,
        search: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[Project]:
        safe_limit, safe_offset = clamp_page(limit, offset)
        stmt = select(Project).where(
            col(Project.tenant_id) == tenant_id,
            col(Project.deleted_at).is_(None),
        )
        if status is not None:
            stmt = stmt.where(col(Project.status) == str(status))
        term = (search or "").strip()
        if term:
            stmt = stmt.where(
                or_(
                    col(Project.title).icontains(term, autoescape=True),
                    col(Project.description).icontains(term, autoescape=True),
                )
            )
        stmt = stmt.order_by(col(Project.created_at).desc()).offset(safe_offset).limit(safe_limit)
        async with self._session() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def update_scoped(
        self,
        tenant_id: str,
        project_id: str,
        *,
        updated_by_user_id: str,
        title: str | None = None,
        description: str | None = None,
        status: ProjectStatus | None = None,
    ) -> Project | None:
        values: dict[str, Any] = {"updated_by_user_id": updated_by_user_id}
        if title is not None:
            values["title"] = title
        if description is not None:
            values["description"] = description
        if status is not None:
            values["status"] = str(status)
        return await self._update(tenant_id, project_id, deleted=False, **values)

    async def soft_delete_scoped(
        self, tenant_id: str, project_id: str, *, updated_by_user_id: str
    ) -> Project | None:
        return await self._update(
            tenant_id,
            project_id,
            deleted=False,
            deleted_at=_utc_now(),
            updated_by_user_id=updated_by_user_id,
        )

    async def restore_scoped(
        self, tenant_id: str, project_id: str, *, updated_by_user_id: str
    ) -> Project | None:
        return await self._update(
            tenant_id,
            project_id,
            deleted=True,
            deleted_at=None,
            updated_by_user_id=updated_by_user_id,
        )

    async def count_scoped(self, tenant_id: str | None, status: ProjectStatus | None = None) -> int:
        """Count non-deleted projects; ``tenant_id=None`` counts across all tenants."""
        stmt = select(func.count()).select_from(Project).where(col(Project.deleted_at).is_(None))
        if tenant_id is not None:
            stmt = stmt.where(col(Project.tenant_id) == tenant_id)
        if status is not None:
            stmt = stmt.where(col(Project.status) == str(status))
        async with self._session() as session:
            result = await session.execute(stmt)
            return int(result.scalar_one())

    async def _update(
        self, tenant_id: str, project_id: str, *, deleted: bool, **values: Any
    ) -> Project | None:
        """Conditional single-statement update; ``deleted`` selects which rows qualify."""
        deleted_clause = (
            col(Project.deleted_at).is_not(None) if deleted else col(Project.deleted_at).is_(None)
        )
        stmt = (
            update(Project)
            .where(
                col(Project.id) == project_id,
                col(Project.tenant_id) == tenant_id,
                deleted_clause,
            )
            .values(updated_at=_utc_now(), **values)
            .returning(Project)
        )
        async with self._session() as session:
            result = await session.execute(stmt, execution_options={"populate_existing": True})
            project = result.scalars().first()
            await session.commit()
        if project:
            logger.info(
                "project_updated",
                project_id=project_id,
                tenant_id=tenant_id,
                fields=sorted(values),
            )
        return project
