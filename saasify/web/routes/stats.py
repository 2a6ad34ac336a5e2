"""Dashboard statistics routes."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from saasify.auth.identity import AuthenticatedUser
from saasify.models.api import PlatformStatsOut, TenantStatsOut, envelope
from saasify.tenancy.guards import TenantMembership
from saasify.web.auth.rbac import require_member, require_platform_admin
from saasify.web.dependencies import Services, get_services

router = APIRouter(tags=["stats"])


@router.get("/api/tenant/{tenant_id}/stats")
async def tenant_stats(
    membership: TenantMembership = Depends(require_member),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    stats = await services.analytics.tenant_stats(membership.tenant_id)
    return envelope(TenantStatsOut.model_validate(stats))


@router.get("/api/platform/stats")
async def platform_stats(
    _admin: AuthenticatedUser = Depends(require_platform_admin),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    stats = await services.analytics.platform_stats()
    return envelope(PlatformStatsOut.model_validate(stats))
