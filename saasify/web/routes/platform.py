"""Platform administration routes: tenant provisioning, listing and status."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from saasify.auth.identity import AuthenticatedUser
from saasify.exceptions import NotFoundError, ValidationFailedError
from saasify.models.api import (
    CreateTenantRequest,
    TenantOut,
    TenantPageOut,
    UpdateTenantStatusRequest,
    envelope,
)
from saasify.storage.repositories.base import normalize_id
from saasify.web.auth.rbac import require_platform_admin
from saasify.web.dependencies import Services, get_services

router = APIRouter(prefix="/api/platform/tenants", tags=["platform"])


@router.get("")
async def list_tenants(
    limit: int | None = None,
    offset: int | None = None,
    search: str | None = Query(default=None, max_length=200),
    _admin: AuthenticatedUser = Depends(require_platform_admin),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    page = await services.tenants.list_page(limit=limit, offset=offset, search=search)
    return envelope(
        TenantPageOut(
            items=[TenantOut.model_validate(t) for t in page.items],
            total=page.total,
            active=page.active,
            suspended=page.suspended,
            limit=page.limit,
            offset=page.offset,
        )
    )


@router.post("", status_code=201)
async def create_tenant(
    body: CreateTenantRequest,
    admin: AuthenticatedUser = Depends(require_platform_admin),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    """Provision a tenant; the creating admin becomes its first tenant admin."""
    tenant, membership = await services.tenants.provision(
        name=body.name,
        slug=body.slug,
        created_by_user_id=admin.id,
        meta=body.meta,
    )
    await services.audit.log(
        tenant_id=tenant.id,
        actor=admin.user,
        action="tenant.provisioned",
        resource_type="tenant",
        resource_id=tenant.id,
        details={"slug": tenant.slug, "admin_membership_id": membership.id},
    )
    return envelope(TenantOut.model_validate(tenant))


@router.patch("/{tenant_id}")
async def update_tenant_status(
    tenant_id: str,
    body: UpdateTenantStatusRequest,
    admin: AuthenticatedUser = Depends(require_platform_admin),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    tid = normalize_id(tenant_id)
    if tid is None:
        raise ValidationFailedError("Invalid tenant id", {"tenantId": "Must be a valid id"})
    tenant = await services.tenants.set_status(tid, body.status)
    if tenant is None:
        raise NotFoundError("Tenant")
    await services.audit.log(
        tenant_id=tid,
        actor=admin.user,
        action="tenant.status_changed",
        resource_type="tenant",
        resource_id=tid,
        details={"status": str(body.status)},
    )
    return envelope(TenantOut.model_validate(tenant))
