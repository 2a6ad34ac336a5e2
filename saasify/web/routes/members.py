"""Tenant member management routes."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from saasify.exceptions import NotFoundError, ValidationFailedError
from saasify.models.api import MemberOut, MembershipOut, UpdateMemberRoleRequest, envelope
from saasify.services.directory import MemberView
from saasify.storage.repositories.base import normalize_id
from saasify.tenancy.guards import TenantMembership
from saasify.web.auth.rbac import require_admin, require_member
from saasify.web.dependencies import Services, get_services

router = APIRouter(prefix="/api/tenant/{tenant_id}/members", tags=["members"])


def _user_id(raw: str) -> str:
    user_id = normalize_id(raw)
    if user_id is None:
        raise ValidationFailedError("Invalid user id", {"userId": "Must be a valid id"})
    return user_id


def _member_out(view: MemberView) -> MemberOut:
    return MemberOut(
        user_id=view.user.id,
        email=view.user.email,
        name=view.user.name,
        image_url=view.user.image_url,
        role=view.membership.role,
        status=view.membership.status,
        joined_at=view.membership.created_at,
    )


@router.get("")
async def list_members(
    membership: TenantMembership = Depends(require_member),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    members = await services.directory.members_of_tenant(membership.tenant_id)
    return envelope([_member_out(m) for m in members])


@router.patch("/{user_id}")
async def update_member_role(
    user_id: str,
    body: UpdateMemberRoleRequest,
    membership: TenantMembership = Depends(require_admin),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    uid = _user_id(user_id)
    updated = await services.memberships.update_role(membership.tenant_id, uid, body.role)
    if updated is None:
        raise NotFoundError("Member")
    await services.audit.log(
        tenant_id=membership.tenant_id,
        actor=membership.user.user,
        action="member.role_changed",
        resource_type="membership",
        resource_id=updated.id,
        details={"user_id": uid, "role": str(body.role)},
    )
    return envelope(MembershipOut.model_validate(updated))


@router.delete("/{user_id}")
async def remove_member(
    user_id: str,
    membership: TenantMembership = Depends(require_admin),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    uid = _user_id(user_id)
    removed = await services.memberships.remove(membership.tenant_id, uid)
    if removed is None:
        raise NotFoundError("Member")
    await services.audit.log(
        tenant_id=membership.tenant_id,
        actor=membership.user.user,
        action="member.removed",
        resource_type="membership",
        resource_id=removed.id,
        details={"user_id": uid},
    )
    return envelope(MembershipOut.model_validate(removed))
