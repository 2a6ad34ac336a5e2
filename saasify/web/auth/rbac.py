"""FastAPI dependencies that run the access guards for a request.

The session token comes from the ``Authorization: Bearer`` header or Clerk's
``__session`` cookie; the tenant selection comes from the selection cookie.
Tenant-scoped API routes additionally check that the ``tenant_id`` path
parameter names the selected tenant.
"""

from __future__ import annotations

from fastapi import Depends, Request

from saasify.auth.identity import AuthenticatedUser
from saasify.tenancy.guards import AccessRequest, TenantMembership, ensure_tenant_id_matches_param
from saasify.types import TenantRole
from saasify.web.dependencies import Services, get_services

SESSION_COOKIE = "__session"


def _session_token(request: Request) -> str | None:
    auth_header = request.headers.get("authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return request.cookies.get(SESSION_COOKIE)


def access_request(request: Request, services: Services = Depends(get_services)) -> AccessRequest:
    return AccessRequest(
        session_token=_session_token(request),
        selection_token=request.cookies.get(services.settings.tenant_cookie_name),
    )


async def require_user(
    access: AccessRequest = Depends(access_request),
    services: Services = Depends(get_services),
) -> AuthenticatedUser:
    return await services.guard.require_auth(access)


async def require_platform_admin(
    access: AccessRequest = Depends(access_request),
    services: Services = Depends(get_services),
) -> AuthenticatedUser:
    return await services.guard.require_platform_admin(access)


async def require_selected_membership(
    access: AccessRequest = Depends(access_request),
    services: Services = Depends(get_services),
) -> TenantMembership:
    """Membership in the selected tenant, for routes without a tenant path parameter."""
    return await services.guard.require_tenant_membership(access)


async def require_member(
    tenant_id: str,
    access: AccessRequest = Depends(access_request),
    services: Services = Depends(get_services),
) -> TenantMembership:
    """Any active member of the selected tenant, which must be ``tenant_id``."""
    membership = await services.guard.require_tenant_role(access, TenantRole.TENANT_USER)
    ensure_tenant_id_matches_param(tenant_id, membership.tenant_id)
    return membership


async def require_admin(
    tenant_id: str,
    access: AccessRequest = Depends(access_request),
    services: Services = Depends(get_services),
) -> TenantMembership:
    """Tenant admin of the selected tenant, which must be ``tenant_id``."""
    membership = await services.guard.require_tenant_admin(access)
    ensure_tenant_id_matches_param(tenant_id, membership.tenant_id)
    return membership
