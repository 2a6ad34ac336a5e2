"""Composable access guards.

Each guard either returns a capability object or raises a typed
:class:`~saasify.exceptions.SaasifyError`. Guards never redirect and never
catch each other's failures; mapping a failure to a response is the job of
the web boundary. Checks run strictly in order: authentication, then tenant
resolution, then role comparison.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from saasify.exceptions import (
    ForbiddenError,
    TenantContextError,
    TenantMismatchError,
    UnauthenticatedError,
    ValidationFailedError,
)
from saasify.storage.repositories.base import normalize_id
from saasify.types import TenantRole, role_rank

if TYPE_CHECKING:
    from saasify.auth.identity import AuthenticatedUser, IdentityProvider
    from saasify.tenancy.context import TenantContext
    from saasify.tenancy.resolver import TenantContextResolver


@dataclass(frozen=True, slots=True)
class AccessRequest:
    """The request-scoped inputs every guard needs, passed explicitly."""

    session_token: str | None = None
    selection_token: str | None = None


@dataclass(frozen=True, slots=True)
class TenantMembership:
    """Capability proving the caller is an active member of the selected tenant."""

    tenant_id: str
    role: TenantRole
    ctx: TenantContext
    user: AuthenticatedUser

    @property
    def is_admin(self) -> bool:
        return self.role == TenantRole.TENANT_ADMIN


class AccessGuard:
    def __init__(self, identity: IdentityProvider, resolver: TenantContextResolver) -> None:
        self._identity = identity
        self._resolver = resolver

    @property
    def resolver(self) -> TenantContextResolver:
        return self._resolver

    async def require_auth(self, request: AccessRequest) -> AuthenticatedUser:
        user = await self._identity.current_user(request.session_token)
        if user is None:
            raise UnauthenticatedError()
        return user

    async def require_platform_admin(self, request: AccessRequest) -> AuthenticatedUser:
        user = await self.require_auth(request)
        if not user.is_platform_admin:
            raise ForbiddenError("FORBIDDEN_PLATFORM_ADMIN_ONLY")
        return user

    async def require_tenant_membership(self, request: AccessRequest) -> TenantMembership:
        user = await self.require_auth(request)
        ctx = await self._resolver.resolve(request.selection_token, user.id)
        if not ctx.ok:
            raise TenantContextError(ctx)
        if ctx.role is None or ctx.tenant_id is None:
            raise ForbiddenError("FORBIDDEN_TENANT_MEMBERSHIP_REQUIRED")
        return TenantMembership(tenant_id=ctx.tenant_id, role=ctx.role, ctx=ctx, user=user)

    async def require_tenant_role(
        self, request: AccessRequest, minimum: TenantRole
    ) -> TenantMembership:
        membership = await self.require_tenant_membership(request)
        if role_rank(membership.role) < role_rank(minimum):
            raise ForbiddenError("FORBIDDEN_TENANT_ROLE_INSUFFICIENT")
        return membership

    async def require_tenant_admin(self, request: AccessRequest) -> TenantMembership:
        return await self.require_tenant_role(request, TenantRole.TENANT_ADMIN)


def ensure_tenant_id_matches_param(path_tenant_id: str | None, scoped_tenant_id: str) -> str:
    """Check that the tenant named in a request path is the selected tenant.

    Being a member of the path tenant is not enough; the caller must have
    selected it. Returns the canonical tenant id.
    """
    normalized = normalize_id(path_tenant_id)
    if normalized is None:
        raise ValidationFailedError("Invalid tenant id", {"tenantId": "Must be a valid id"})
    if normalized != scoped_tenant_id:
        raise TenantMismatchError(normalized, scoped_tenant_id)
    return normalized
