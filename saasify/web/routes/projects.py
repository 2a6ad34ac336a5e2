"""Tenant-scoped project API routes."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, Query

from saasify.exceptions import NotFoundError, ValidationFailedError
from saasify.models.api import CreateProjectRequest, ProjectOut, UpdateProjectRequest, envelope
from saasify.storage.repositories.base import normalize_id
from saasify.tenancy.guards import TenantMembership
from saasify.types import ProjectStatus
from saasify.web.auth.rbac import require_admin, require_member
from saasify.web.dependencies import Services, get_services

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/tenant/{tenant_id}/projects", tags=["projects"])


def _project_id(raw: str) -> str:
    project_id = normalize_id(raw)
    if project_id is None:
        raise ValidationFailedError("Invalid project id", {"projectId": "Must be a valid id"})
    return project_id


@router.get("")
async def list_projects(
    status: ProjectStatus | None = None,
    search: str | None = Query(default=None, max_length=200),
    limit: int | None = None,
    offset: int | None = None,
    membership: TenantMembership = Depends(require_member),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    projects = await services.projects.list_scoped(
        membership.tenant_id, status=status, search=search, limit=limit, offset=offset
    )
    return envelope([ProjectOut.model_validate(p) for p in projects])


@router.post("", status_code=201)
async def create_project(
    body: CreateProjectRequest,
    membership: TenantMembership = Depends(require_admin),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    project = await services.projects.create(
        tenant_id=membership.tenant_id,
        title=body.title,
        description=body.description,
        created_by_user_id=membership.user.id,
    )
    await services.audit.log(
        tenant_id=membership.tenant_id,
        actor=membership.user.user,
        action="project.created",
        resource_type="project",
        resource_id=project.id,
        details={"title": project.title},
    )
    return envelope(ProjectOut.model_validate(project))


@router.get("/{project_id}")
async def get_project(
    project_id: str,
    membership: TenantMembership = Depends(require_member),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    project = await services.projects.get_scoped(membership.tenant_id, _project_id(project_id))
    if project is None:
        raise NotFoundError("Project")
    return envelope(ProjectOut.model_validate(project))


@router.patch("/{project_id}")
async def update_project(
    project_id: str,
    body: UpdateProjectRequest,
    membership: TenantMembership = Depends(require_admin),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    pid = _project_id(project_id)
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise ValidationFailedError("Nothing to update", {"body": "Provide at least one field"})

    project = await services.projects.update_scoped(
        membership.tenant_id, pid, updated_by_user_id=membership.user.id, **changes
    )
    if project is None:
        raise NotFoundError("Project")
    await services.audit.log(
        tenant_id=membership.tenant_id,
        actor=membership.user.user,
        action="project.updated",
        resource_type="project",
        resource_id=pid,
        details={"fields": sorted(changes)},
    )
    return envelope(ProjectOut.model_validate(project))


@router.delete("/{project_id}")
async def delete_project(
    project_id: str,
    membership: TenantMembership = Depends(require_admin),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    pid = _project_id(project_id)
    project = await services.projects.soft_delete_scoped(
        membership.tenant_id, pid, updated_by_user_id=membership.user.id
    )
    if project is None:
        raise NotFoundError("Project")
    await services.audit.log(
        tenant_id=membership.tenant_id,
        actor=membership.user.user,
        action="project.deleted",
        resource_type="project",
        resource_id=pid,
    )
    return envelope(ProjectOut.model_validate(project))


@router.post("/{project_id}/restore")
async def restore_project(
    project_id: str,
    membership: TenantMembership = Depends(require_admin),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    pid = _project_id(project_id)
    project = await services.projects.restore_scoped(
        membership.tenant_id, pid, updated_by_user_id=membership.user.id
    )
    if project is None:
        raise NotFoundError("Project")
    await services.audit.log(
        tenant_id=membership.tenant_id,
        actor=membership.user.user,
        action="project.restored",
        resource_type="project",
        resource_id=pid,
    )
    return envelope(ProjectOut.model_validate(project))
