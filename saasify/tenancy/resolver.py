"""Tenant context resolution.

Turns a tenant-selection token (the value of the selection cookie) and an
optional local user id into a :class:`TenantContext`. The resolver only
reads: it never mutates tenant or membership state, so calling it twice
with the same inputs and the same stored records gives the same answer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from saasify.config.settings import DEFAULT_SELECT_TENANT_PATH
from saasify.storage.repositories.base import normalize_id
from saasify.tenancy.context import TenantContext
from saasify.types import TenantContextStatus, TenantRole, TenantStatus

if TYPE_CHECKING:
    from saasify.storage.repositories.memberships import MembershipRepository
    from saasify.storage.repositories.tenants import TenantRepository

logger = structlog.get_logger(__name__)


def safe_select_path(path: str | None) -> str:
    """Only same-site absolute paths are accepted as redirect targets."""
    candidate = (path or "").strip()
    if candidate.startswith("/") and not candidate.startswith("//"):
        return candidate
    return DEFAULT_SELECT_TENANT_PATH


class TenantContextResolver:
    """Resolves the selected tenant and, when given a user, their membership role."""

    def __init__(
        self,
        tenants: TenantRepository,
        memberships: MembershipRepository,
        select_tenant_path: str = DEFAULT_SELECT_TENANT_PATH,
    ) -> None:
        self._tenants = tenants
        self._memberships = memberships
        self._select_path = safe_select_path(select_tenant_path)

    async def resolve(
        self, selection_token: str | None, user_id: str | None = None
    ) -> TenantContext:
        raw = (selection_token or "").strip()
        if not raw:
            return TenantContext.failure(
                TenantContextStatus.MISSING_TENANT, "No tenant selected.", self._select_path
            )

        tenant_id = normalize_id(raw)
        if tenant_id is None:
            return TenantContext.failure(
                TenantContextStatus.INVALID_TENANT,
                "Invalid tenant id in selection.",
                self._select_path,
            )

        tenant = await self._tenants.get(tenant_id)
        if tenant is None:
            return TenantContext.failure(
                TenantContextStatus.TENANT_NOT_FOUND,
                "Tenant not found.",
                self._select_path,
                tenant_id=tenant_id,
            )

        if tenant.status == TenantStatus.SUSPENDED:
            return TenantContext.failure(
                TenantContextStatus.TENANT_SUSPENDED,
                "Tenant is suspended.",
                self._select_path,
                tenant_id=tenant_id,
                tenant=tenant,
            )

        if not user_id:
            # Existence/activity check only; no role is implied.
            return TenantContext(
                ok=True, status=TenantContextStatus.OK, tenant_id=tenant_id, tenant=tenant
            )

        membership = await self._memberships.find_active(tenant_id, user_id)
        if membership is None or not membership.role:
            return TenantContext.failure(
                TenantContextStatus.NOT_A_MEMBER,
                "User is not a member of this tenant.",
                self._select_path,
                tenant_id=tenant_id,
                tenant=tenant,
            )

        logger.debug("tenant_context_resolved", tenant_id=tenant_id, role=membership.role)
        return TenantContext(
            ok=True,
            status=TenantContextStatus.OK,
            tenant_id=tenant_id,
            tenant=tenant,
            role=TenantRole(membership.role),
        )
