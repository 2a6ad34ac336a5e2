"""Per-project access routes; tenant admins grant viewer or editor access."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from saasify.exceptions import NotFoundError, ValidationFailedError
from saasify.models.api import AssignProjectMemberRequest, ProjectMemberOut, envelope
from saasify.models.database import ProjectMember, User
from saasify.storage.repositories.base import normalize_id
from saasify.tenancy.guards import TenantMembership
from saasify.web.auth.rbac import require_admin
from saasify.web.dependencies import Services, get_services

router = APIRouter(
    prefix="/api/tenant/{tenant_id}/projects/{project_id}/members", tags=["project-members"]
)


def _valid_id(raw: str, field: str, label: str) -> str:
    value = normalize_id(raw)
    if value is None:
        raise ValidationFailedError(f"Invalid {label} id", {field: "Must be a valid id"})
    return value


def _member_out(member: ProjectMember, user: User | None) -> ProjectMemberOut:
    out = ProjectMemberOut.model_validate(member)
    if user is not None:
        out.email = user.email
        out.name = user.name
    return out


async def _project_in_tenant(services: Services, tenant_id: str, raw_project_id: str) -> str:
    project_id = _valid_id(raw_project_id, "projectId", "project")
    if await services.projects.get_scoped(tenant_id, project_id) is None:
        raise NotFoundError("Project")
    return project_id


@router.get("")
async def list_project_members(
    project_id: str,
    membership: TenantMembership = Depends(require_admin),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    pid = await _project_in_tenant(services, membership.tenant_id, project_id)
    members = await services.project_members.list_active(membership.tenant_id, pid)
    users = await services.users.get_many([m.user_id for m in members])
    return envelope([_member_out(m, users.get(m.user_id)) for m in members])


@router.post("")
async def assign_project_member(
    project_id: str,
    body: AssignProjectMemberRequest,
    membership: TenantMembership = Depends(require_admin),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    pid = await _project_in_tenant(services, membership.tenant_id, project_id)
    uid = _valid_id(body.user_id, "userId", "user")
    # Project access only extends an existing tenant membership
    if await services.memberships.find_active(membership.tenant_id, uid) is None:
        raise NotFoundError("Member")

    member = await services.project_members.upsert(
        tenant_id=membership.tenant_id, project_id=pid, user_id=uid, role=body.role
    )
    await services.audit.log(
        tenant_id=membership.tenant_id,
        actor=membership.user.user,
        action="project_member.assigned",
        resource_type="project",
        resource_id=pid,
        details={"user_id": uid, "role": str(body.role)},
    )
    return envelope(_member_out(member, await services.users.get_by_id(uid)))


@router.delete("/{user_id}")
async def remove_project_member(
    project_id: str,
    user_id: str,
    membership: TenantMembership = Depends(require_admin),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    pid = await _project_in_tenant(services, membership.tenant_id, project_id)
    uid = _valid_id(user_id, "userId", "user")
    removed = await services.project_members.remove(membership.tenant_id, pid, uid)
    if removed is None:
        raise NotFoundError("Project member")
    await services.audit.log(
        tenant_id=membership.tenant_id,
        actor=membership.user.user,
        action="project_member.removed",
        resource_type="project",
        resource_id=pid,
        details={"user_id": uid},
    )
    return envelope(ProjectMemberOut.model_validate(removed))
