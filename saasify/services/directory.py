"""Membership listings joined with their tenants or users.

The joins are explicit: memberships are read first, then the referenced
tenants or users are batch-fetched by id and merged here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from saasify.models.database import Membership, Tenant, User
    from saasify.storage.repositories.memberships import MembershipRepository
    from saasify.storage.repositories.tenants import TenantRepository
    from saasify.storage.repositories.users import UserRepository

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class TenantMembershipView:
    membership: Membership
    tenant: Tenant


@dataclass(frozen=True, slots=True)
class MemberView:
    membership: Membership
    user: User


class MembershipDirectory:
    def __init__(
        self,
        memberships: MembershipRepository,
        tenants: TenantRepository,
        users: UserRepository,
    ) -> None:
        self._memberships = memberships
        self._tenants = tenants
        self._users = users

    async def tenants_for_user(self, user_id: str) -> list[TenantMembershipView]:
        """The user's non-removed memberships with their tenant records."""
        memberships = await self._memberships.list_for_user(user_id)
        tenants = await self._tenants.get_many([m.tenant_id for m in memberships])
        views = []
        for membership in memberships:
            tenant = tenants.get(membership.tenant_id)
            if tenant is None:
                logger.warning(
                    "membership_tenant_missing",
                    membership_id=membership.id,
                    tenant_id=membership.tenant_id,
                )
                continue
            views.append(TenantMembershipView(membership=membership, tenant=tenant))
        return views

    async def members_of_tenant(self, tenant_id: str) -> list[MemberView]:
        """The tenant's non-removed memberships with their user records."""
        memberships = await self._memberships.list_for_tenant(tenant_id)
        users = await self._users.get_many([m.user_id for m in memberships])
        return [
            MemberView(membership=m, user=users[m.user_id])
            for m in memberships
            if m.user_id in users
        ]
