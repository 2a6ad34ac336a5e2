"""Server-rendered HTML page routes.

Failures raised by the guards are turned into redirects by the exception
handlers: sign-in for anonymous callers, the tenant-selection page when the
selected tenant cannot be used.
"""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from saasify.auth.identity import AuthenticatedUser
from saasify.tenancy.guards import TenantMembership
from saasify.web.auth.rbac import require_platform_admin, require_selected_membership, require_user
from saasify.web.dependencies import Services, get_services

router = APIRouter(tags=["pages"])

templates = Jinja2Templates(directory=str(Path(__file__).parent.parent / "templates"))


@router.get("/tenant/select-tenant", response_class=HTMLResponse)
async def select_tenant_page(
    request: Request,
    user: AuthenticatedUser = Depends(require_user),
    services: Services = Depends(get_services),
) -> HTMLResponse:
    tenants = await services.directory.tenants_for_user(user.id)
    return templates.TemplateResponse(
        request, "select_tenant.html", {"user": user.user, "tenants": tenants}
    )


@router.get("/tenant", response_class=HTMLResponse)
async def tenant_dashboard_page(
    request: Request,
    membership: TenantMembership = Depends(require_selected_membership),
    services: Services = Depends(get_services),
) -> HTMLResponse:
    stats = await services.analytics.tenant_stats(membership.tenant_id)
    projects = await services.projects.list_scoped(membership.tenant_id, limit=12)
    return templates.TemplateResponse(
        request,
        "tenant_dashboard.html",
        {
            "tenant": membership.ctx.tenant,
            "role": membership.role,
            "stats": stats,
            "projects": projects,
        },
    )


@router.get("/platform", response_class=HTMLResponse)
async def platform_dashboard_page(
    request: Request,
    search: str | None = None,
    _admin: AuthenticatedUser = Depends(require_platform_admin),
    services: Services = Depends(get_services),
) -> HTMLResponse:
    stats = await services.analytics.platform_stats()
    page = await services.tenants.list_page(search=search)
    return templates.TemplateResponse(
        request, "platform_dashboard.html", {"stats": stats, "page": page, "search": search or ""}
    )
