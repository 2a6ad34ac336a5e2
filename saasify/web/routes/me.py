"""Current-user routes and the tenant selection cookie."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from saasify.auth.identity import AuthenticatedUser
from saasify.exceptions import ValidationFailedError
from saasify.models.api import MyTenantOut, SelectTenantRequest, UserOut, envelope
from saasify.storage.repositories.base import normalize_id
from saasify.web.auth.rbac import require_user
from saasify.web.dependencies import Services, get_services

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/me", tags=["me"])


@router.get("")
async def get_me(user: AuthenticatedUser = Depends(require_user)) -> dict[str, Any]:
    return envelope(UserOut.model_validate(user.user))


@router.get("/tenants")
async def list_my_tenants(
    user: AuthenticatedUser = Depends(require_user),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    views = await services.directory.tenants_for_user(user.id)
    return envelope(
        [
            MyTenantOut(
                tenant_id=v.tenant.id,
                name=v.tenant.name,
                slug=v.tenant.slug,
                status=v.tenant.status,
                role=v.membership.role,
                membership_status=v.membership.status,
            )
            for v in views
        ]
    )


@router.post("/tenant-selection")
async def select_tenant(
    body: SelectTenantRequest,
    user: AuthenticatedUser = Depends(require_user),
    services: Services = Depends(get_services),
) -> JSONResponse:
    """Store the selected tenant in a cookie.

    This only steers which tenant later requests try; access is decided by
    the tenant context resolver on every request.
    """
    tenant_id = normalize_id(body.tenant_id)
    if tenant_id is None:
        raise ValidationFailedError("Invalid tenant id", {"tenantId": "Must be a valid id"})

    settings = services.settings
    response = JSONResponse(envelope({"tenantId": tenant_id}))
    response.set_cookie(
        settings.tenant_cookie_name,
        tenant_id,
        max_age=settings.tenant_cookie_max_age,
        path="/",
        secure=settings.secure_cookies,
        httponly=True,
        samesite="lax",
    )
    logger.info("tenant_selected", user_id=user.id, tenant_id=tenant_id)
    return response


@router.delete("/tenant-selection")
async def clear_tenant_selection(services: Services = Depends(get_services)) -> JSONResponse:
    settings = services.settings
    response = JSONResponse(envelope(None))
    response.delete_cookie(
        settings.tenant_cookie_name,
        path="/",
        secure=settings.secure_cookies,
        httponly=True,
        samesite="lax",
    )
    return response
