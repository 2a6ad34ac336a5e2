"""Saved project-list views, visible only to the member who saved them."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from saasify.exceptions import NotFoundError, ValidationFailedError
from saasify.models.api import (
    CreateSavedViewRequest,
    PinSavedViewRequest,
    SavedViewOut,
    envelope,
)
from saasify.storage.repositories.base import normalize_id
from saasify.tenancy.guards import TenantMembership
from saasify.web.auth.rbac import require_member
from saasify.web.dependencies import Services, get_services

router = APIRouter(prefix="/api/tenant/{tenant_id}/saved-views", tags=["saved-views"])


def _view_id(raw: str) -> str:
    view_id = normalize_id(raw)
    if view_id is None:
        raise ValidationFailedError("Invalid view id", {"viewId": "Must be a valid id"})
    return view_id


@router.get("")
async def list_saved_views(
    membership: TenantMembership = Depends(require_member),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    views = await services.saved_views.list_for_user(membership.tenant_id, membership.user.id)
    return envelope([SavedViewOut.model_validate(v) for v in views])


@router.post("", status_code=201)
async def create_saved_view(
    body: CreateSavedViewRequest,
    membership: TenantMembership = Depends(require_member),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    view = await services.saved_views.create(
        tenant_id=membership.tenant_id,
        user_id=membership.user.id,
        name=body.name,
        filters=body.filters.model_dump(mode="json"),
        is_pinned=body.is_pinned,
    )
    await services.audit.log(
        tenant_id=membership.tenant_id,
        actor=membership.user.user,
        action="saved_view.created",
        resource_type="saved_view",
        resource_id=view.id,
        details={"name": view.name},
    )
    return envelope(SavedViewOut.model_validate(view))


@router.patch("/{view_id}")
async def pin_saved_view(
    view_id: str,
    body: PinSavedViewRequest,
    membership: TenantMembership = Depends(require_member),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    view = await services.saved_views.set_pinned(
        membership.tenant_id, membership.user.id, _view_id(view_id), is_pinned=body.is_pinned
    )
    if view is None:
        raise NotFoundError("Saved view")
    return envelope(SavedViewOut.model_validate(view))


@router.delete("/{view_id}")
async def delete_saved_view(
    view_id: str,
    membership: TenantMembership = Depends(require_member),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    vid = _view_id(view_id)
    if not await services.saved_views.delete(membership.tenant_id, membership.user.id, vid):
        raise NotFoundError("Saved view")
    await services.audit.log(
        tenant_id=membership.tenant_id,
        actor=membership.user.user,
        action="saved_view.deleted",
        resource_type="saved_view",
        resource_id=vid,
    )
    return envelope({"deleted": True, "id": vid})
