"""Membership repository.

Every lookup used for authorization or listing excludes ``removed`` rows.
Mutations are single-statement conditional updates so concurrent admin
actions cannot lose each other's writes.
"""

from __future__ import annotations

import structlog
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import col, select

from saasify.exceptions import ConflictError
from saasify.models.database import Membership, _utc_now
from saasify.storage.repositories.base import DatabaseRepository
from saasify.types import MembershipStatus, TenantRole

logger = structlog.get_logger(__name__)

_NOT_REMOVED = col(Membership.status) != str(MembershipStatus.REMOVED)


class MembershipRepository(DatabaseRepository):
    """PostgreSQL-backed tenant membership store."""

    async def create(
        self,
        *,
        tenant_id: str,
        user_id: str,
        role: TenantRole,
        status: MembershipStatus = MembershipStatus.ACTIVE,
    ) -> Membership:
        async with self._session() as session:
            membership = Membership(
                tenant_id=tenant_id, user_id=user_id, role=str(role), status=str(status)
            )
            session.add(membership)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                msg = "User already has a membership in this tenant"
                raise ConflictError(msg) from exc
        logger.info("membership_created", tenant_id=tenant_id, user_id=user_id, role=str(role))
        return membership

    async def find_active(self, tenant_id: str, user_id: str) -> Membership | None:
        """Return the non-removed membership for (tenant, user), if any."""
        async with self._session() as session:
            stmt = select(Membership).where(
                col(Membership.tenant_id) == tenant_id,
                col(Membership.user_id) == user_id,
                _NOT_REMOVED,
            )
            result = await session.execute(stmt)
            return result.scalars().first()

    async def list_for_tenant(self, tenant_id: str) -> list[Membership]:
        async with self._session() as session:
            stmt = (
                select(Membership)
                .where(col(Membership.tenant_id) == tenant_id, _NOT_REMOVED)
                .order_by(col(Membership.created_at).desc())
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def list_for_user(self, user_id: str) -> list[Membership]:
        async with self._session() as session:
            stmt = (
                select(Membership)
                .where(col(Membership.user_id) == user_id, _NOT_REMOVED)
                .order_by(col(Membership.created_at).desc())
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def count_for_tenant(self, tenant_id: str) -> int:
        async with self._session() as session:
            stmt = (
                select(func.count())
                .select_from(Membership)
                .where(col(Membership.tenant_id) == tenant_id, _NOT_REMOVED)
            )
            result = await session.execute(stmt)
            return int(result.scalar_one())

    async def update_role(
        self, tenant_id: str, user_id: str, role: TenantRole
    ) -> Membership | None:
        """Change the role of a non-removed membership; None if there is none."""
        return await self._conditional_update(
            tenant_id, user_id, role=str(role), updated_at=_utc_now()
        )

    async def remove(self, tenant_id: str, user_id: str) -> Membership | None:
        """Mark a membership removed; the row is kept for audit history."""
        return await self._conditional_update(
            tenant_id, user_id, status=str(MembershipStatus.REMOVED), updated_at=_utc_now()
        )

    async def _conditional_update(
        self, tenant_id: str, user_id: str, **values: object
    ) -> Membership | None:
        stmt = (
            update(Membership)
            .where(
                col(Membership.tenant_id) == tenant_id,
                col(Membership.user_id) == user_id,
                _NOT_REMOVED,
            )
            .values(**values)
            .returning(Membership)
        )
        async with self._session() as session:
            result = await session.execute(stmt, execution_options={"populate_existing": True})
            membership = result.scalars().first()
            await session.commit()
        if membership:
            logger.info(
                "membership_updated",
                tenant_id=tenant_id,
                user_id=user_id,
                role=membership.role,
                status=membership.status,
            )
        return membership
