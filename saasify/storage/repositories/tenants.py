"""Tenant repository: lookup, provisioning, platform listing and status changes."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

import structlog
from sqlalchemy import func, or_, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import col, select

from saasify.exceptions import ConflictError
from saasify.models.database import Membership, Tenant, _utc_now
from saasify.storage.repositories.base import DatabaseRepository, clamp_page
from saasify.types import MembershipStatus, TenantRole, TenantStatus

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class TenantPage:
    items: list[Tenant] = field(default_factory=list)
    total: int = 0
    active: int = 0
    suspended: int = 0
    limit: int = 12
    offset: int = 0


class TenantRepository(DatabaseRepository):
    """PostgreSQL-backed tenant store."""

    async def get(self, tenant_id: str) -> Tenant | None:
        async with self._session() as session:
            return await session.get(Tenant, tenant_id)

    async def get_many(self, tenant_ids: list[str]) -> dict[str, Tenant]:
        """Batch-fetch tenants by id, keyed by id."""
        if not tenant_ids:
            return {}
        async with self._session() as session:
            stmt = select(Tenant).where(col(Tenant.id).in_(set(tenant_ids)))
            result = await session.execute(stmt)
            return {t.id: t for t in result.scalars().all()}

    async def provision(
        self,
        *,
        name: str,
        slug: str,
        created_by_user_id: str,
        meta: dict[str, Any] | None = None,
    ) -> tuple[Tenant, Membership]:
        """Create a tenant and its creator's admin membership in one transaction."""
        async with self._session() as session:
            tenant = Tenant(
                name=name,
                slug=slug,
                created_by_user_id=created_by_user_id,
                meta=meta or {},
            )
            session.add(tenant)

            membership = Membership(
                tenant_id=tenant.id,
                user_id=created_by_user_id,
                role=str(TenantRole.TENANT_ADMIN),
                status=str(MembershipStatus.ACTIVE),
            )
            session.add(membership)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                logger.info("tenant_slug_conflict", slug=slug)
                msg = "A tenant with this slug already exists"
                raise ConflictError(msg) from exc

        logger.info("tenant_provisioned", tenant_id=tenant.id, slug=slug)
        return tenant, membership

    async def list_page(
        self,
        *,
        limit: int | None = None,
        offset: int | None = None,
        search: str | None = None,
    ) -> TenantPage:
        """List tenants newest first with total/active/suspended counts.

        The page and the three counts are independent reads and run concurrently.
        """
        safe_limit, safe_offset = clamp_page(limit, offset)
        term = (search or "").strip()
        criteria = []
        if term:
            criteria.append(
                or_(
                    col(Tenant.name).icontains(term, autoescape=True),
                    col(Tenant.slug).icontains(term, autoescape=True),
                )
            )

        async def _items() -> list[Tenant]:
            async with self._session() as session:
                stmt = (
                    select(Tenant)
                    .where(*criteria)
                    .order_by(col(Tenant.created_at).desc())
                    .offset(safe_offset)
                    .limit(safe_limit)
                )
                result = await session.execute(stmt)
                return list(result.scalars().all())

        async def _count(status: TenantStatus | None = None) -> int:
            where = list(criteria)
            if status is not None:
                where.append(col(Tenant.status) == str(status))
            async with self._session() as session:
                stmt = select(func.count()).select_from(Tenant).where(*where)
                result = await session.execute(stmt)
                return int(result.scalar_one())

        items, total, active, suspended = await asyncio.gather(
            _items(),
            _count(),
            _count(TenantStatus.ACTIVE),
            _count(TenantStatus.SUSPENDED),
        )
        return TenantPage(
            items=items,
            total=total,
            active=active,
            suspended=suspended,
            limit=safe_limit,
            offset=safe_offset,
        )

    async def set_status(self, tenant_id: str, status: TenantStatus) -> Tenant | None:
        """Atomically set the tenant status; returns None if the tenant does not exist."""
        stmt = (
            update(Tenant)
            .where(col(Tenant.id) == tenant_id)
            .values(status=str(status), updated_at=_utc_now())
            .returning(Tenant)
        )
        async with self._session() as session:
            result = await session.execute(stmt, execution_options={"populate_existing": True})
            tenant = result.scalars().first()
            await session.commit()
        if tenant:
            logger.info("tenant_status_changed", tenant_id=tenant_id, status=str(status))
        return tenant

    async def count(self, status: TenantStatus | None = None) -> int:
        async with self._session() as session:
            stmt = select(func.count()).select_from(Tenant)
            if status is not None:
                stmt = stmt.where(col(Tenant.status) == str(status))
            result = await session.execute(stmt)
            return int(result.scalar_one())
