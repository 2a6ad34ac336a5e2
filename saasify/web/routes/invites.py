"""Tenant invite routes and the invite acceptance endpoint."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from saasify.auth.identity import AuthenticatedUser
from saasify.exceptions import NotFoundError, ValidationFailedError
from saasify.models.api import (
    AcceptInviteRequest,
    CreatedInviteOut,
    CreateInviteRequest,
    InviteOut,
    MembershipOut,
    envelope,
)
from saasify.storage.repositories.base import normalize_id
from saasify.tenancy.guards import TenantMembership
from saasify.types import InviteStatus
from saasify.web.auth.rbac import require_admin, require_member, require_user
from saasify.web.dependencies import Services, get_services

router = APIRouter(prefix="/api/tenant/{tenant_id}/invites", tags=["invites"])
accept_router = APIRouter(prefix="/api/invites", tags=["invites"])


@router.get("")
async def list_invites(
    status: InviteStatus | None = None,
    limit: int | None = None,
    offset: int | None = None,
    membership: TenantMembership = Depends(require_member),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    invites = await services.invites.list_scoped(
        membership.tenant_id, status=status, limit=limit, offset=offset
    )
    return envelope([InviteOut.model_validate(i) for i in invites])


@router.post("", status_code=201)
async def create_invite(
    body: CreateInviteRequest,
    membership: TenantMembership = Depends(require_admin),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    invite, raw_token = await services.invites.create(
        tenant_id=membership.tenant_id,
        email=str(body.email),
        role=body.role,
        invited_by_user_id=membership.user.id,
    )
    await services.audit.log(
        tenant_id=membership.tenant_id,
        actor=membership.user.user,
        action="invite.created",
        resource_type="invite",
        resource_id=invite.id,
        details={"email": invite.email, "role": invite.role},
    )
    return envelope(CreatedInviteOut(invite=InviteOut.model_validate(invite), token=raw_token))


@router.delete("/{invite_id}")
async def revoke_invite(
    invite_id: str,
    membership: TenantMembership = Depends(require_admin),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    iid = normalize_id(invite_id)
    if iid is None:
        raise ValidationFailedError("Invalid invite id", {"inviteId": "Must be a valid id"})
    invite = await services.invites.revoke_scoped(membership.tenant_id, iid)
    if invite is None:
        raise NotFoundError("Invite")
    await services.audit.log(
        tenant_id=membership.tenant_id,
        actor=membership.user.user,
        action="invite.revoked",
        resource_type="invite",
        resource_id=iid,
    )
    return envelope(InviteOut.model_validate(invite))


@accept_router.post("/accept")
async def accept_invite(
    body: AcceptInviteRequest,
    user: AuthenticatedUser = Depends(require_user),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    """Join the invite's tenant. Authenticated, but no tenant needs to be selected."""
    invite, membership = await services.invites.accept(
        raw_token=body.token, user_id=user.id, email=user.email
    )
    await services.audit.log(
        tenant_id=invite.tenant_id,
        actor=user.user,
        action="invite.accepted",
        resource_type="invite",
        resource_id=invite.id,
        details={"role": membership.role},
    )
    return envelope(MembershipOut.model_validate(membership))
