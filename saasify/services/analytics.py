"""Dashboard statistics for the tenant and platform views."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING

from saasify.types import ProjectStatus, TenantStatus

if TYPE_CHECKING:
    from saasify.storage.repositories.memberships import MembershipRepository
    from saasify.storage.repositories.projects import ProjectRepository
    from saasify.storage.repositories.tenants import TenantRepository


@dataclass(frozen=True, slots=True)
class TenantStats:
    active_projects: int
    archived_projects: int
    members: int


@dataclass(frozen=True, slots=True)
class PlatformStats:
    total_tenants: int
    active_tenants: int
    total_projects: int


class AnalyticsService:
    """Independent counts are issued concurrently."""

    def __init__(
        self,
        tenants: TenantRepository,
        memberships: MembershipRepository,
        projects: ProjectRepository,
    ) -> None:
        self._tenants = tenants
        self._memberships = memberships
        self._projects = projects

    async def tenant_stats(self, tenant_id: str) -> TenantStats:
        active, archived, members = await asyncio.gather(
            self._projects.count_scoped(tenant_id, ProjectStatus.ACTIVE),
            self._projects.count_scoped(tenant_id, ProjectStatus.ARCHIVED),
            self._memberships.count_for_tenant(tenant_id),
        )
        return TenantStats(active_projects=active, archived_projects=archived, members=members)

    async def platform_stats(self) -> PlatformStats:
        total, active, projects = await asyncio.gather(
            self._tenants.count(),
            self._tenants.count(TenantStatus.ACTIVE),
            self._projects.count_scoped(None),
        )
        return PlatformStats(total_tenants=total, active_tenants=active, total_projects=projects)
