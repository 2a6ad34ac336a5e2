"""Audit log query API routes."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from saasify.models.api import AuditLogOut, envelope
from saasify.tenancy.guards import TenantMembership
from saasify.web.auth.rbac import require_member
from saasify.web.dependencies import Services, get_services

router = APIRouter(prefix="/api/tenant/{tenant_id}/audit-logs", tags=["audit"])


@router.get("")
async def list_audit_logs(
    action: str | None = Query(default=None, max_length=64),
    limit: int | None = None,
    offset: int | None = None,
    membership: TenantMembership = Depends(require_member),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    """Audit entries for the selected tenant, newest first."""
    entries = await services.audit.list_scoped(
        membership.tenant_id, action=action, limit=limit, offset=offset
    )
    return envelope([AuditLogOut.model_validate(e) for e in entries])
