"""Per-project access grants.

A grant is keyed by (tenant, project, user). Assigning writes in one upsert so
concurrent admins converge on a single row; removal keeps the row with status
``removed``.
"""

from __future__ import annotations

import structlog
from sqlalchemy import update
from sqlmodel import col, select

from saasify.models.database import ProjectMember, _new_uuid, _utc_now
from saasify.storage.database import dialect_insert
from saasify.storage.repositories.base import DatabaseRepository
from saasify.types import ProjectAccessRole, ProjectMemberStatus

logger = structlog.get_logger(__name__)

_ACTIVE = col(ProjectMember.status) == str(ProjectMemberStatus.ACTIVE)


class ProjectMemberRepository(DatabaseRepository):
    """PostgreSQL-backed project access store."""

    async def upsert(
        self, *, tenant_id: str, project_id: str, user_id: str, role: ProjectAccessRole
    ) -> ProjectMember:
        """Grant ``role`` on the project, reactivating a removed grant."""
        now = _utc_now()
        refreshed: dict[str, object] = {
            "role": str(role),
            "status": str(ProjectMemberStatus.ACTIVE),
            "updated_at": now,
        }
        stmt = (
            dialect_insert(self._engine, ProjectMember)
            .values(
                id=_new_uuid(),
                tenant_id=tenant_id,
                project_id=project_id,
                user_id=user_id,
                created_at=now,
                **refreshed,
            )
            .on_conflict_do_update(
                index_elements=["tenant_id", "project_id", "user_id"], set_=refreshed
            )
            .returning(ProjectMember)
        )
        async with self._session() as session:
            result = await session.execute(stmt, execution_options={"populate_existing": True})
            member = result.scalars().one()
            await session.commit()
        logger.info(
            "project_member_upserted",
            tenant_id=tenant_id,
            project_id=project_id,
            user_id=user_id,
            role=str(role),
        )
        return member

    async def remove(self, tenant_id: str, project_id: str, user_id: str) -> ProjectMember | None:
        """Mark an active grant removed; None when there is no active grant."""
        stmt = (
            update(ProjectMember)
            .where(
                col(ProjectMember.tenant_id) == tenant_id,
                col(ProjectMember.project_id) == project_id,
                col(ProjectMember.user_id) == user_id,
                _ACTIVE,
            )
            .values(status=str(ProjectMemberStatus.REMOVED), updated_at=_utc_now())
            .returning(ProjectMember)
        )
        async with self._session() as session:
            result = await session.execute(stmt, execution_options={"populate_existing": True})
            member = result.scalars().first()
            await session.commit()
        if member:
            logger.info(
                "project_member_removed",
                tenant_id=tenant_id,
                project_id=project_id,
                user_id=user_id,
            )
        return member

    async def list_active(self, tenant_id: str, project_id: str) -> list[ProjectMember]:
        async with self._session() as session:
            stmt = (
                select(ProjectMember)
                .where(
                    col(ProjectMember.tenant_id) == tenant_id,
                    col(ProjectMember.project_id) == project_id,
                    _ACTIVE,
                )
                .order_by(col(ProjectMember.created_at).desc())
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())
