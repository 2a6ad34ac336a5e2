"""Pydantic request and response schemas for the JSON API.

Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from saasify.types import (
    InviteStatus,
    MembershipStatus,
    PlatformRole,
    ProjectAccessRole,
    ProjectMemberStatus,
    ProjectStatus,
    TenantRole,
    TenantStatus,
)

_SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def envelope(data: Any) -> dict[str, Any]:
    """Wrap a successful result in the ``{ok: true, data}`` envelope."""
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json", by_alias=True)
    elif isinstance(data, list):
        data = [
            item.model_dump(mode="json", by_alias=True) if isinstance(item, BaseModel) else item
            for item in data
        ]
    return {"ok": True, "data": data}


# --- Requests ---


class CreateTenantRequest(ApiModel):
    name: str = Field(min_length=1, max_length=120)
    slug: str = Field(min_length=2, max_length=64)
    meta: dict[str, Any] = Field(default_factory=dict, alias="metadata")

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            msg = "Name must not be blank"
            raise ValueError(msg)
        return value

    @field_validator("slug")
    @classmethod
    def _check_slug(cls, value: str) -> str:
        if not _SLUG_RE.match(value):
            msg = "Slug must be lowercase letters, digits and single hyphens"
            raise ValueError(msg)
        return value


class UpdateTenantStatusRequest(ApiModel):
    status: TenantStatus


def _non_blank_title(value: str) -> str:
    value = value.strip()
    if not value:
        msg = "Title must not be blank"
        raise ValueError(msg)
    return value


class CreateProjectRequest(ApiModel):
    title: str = Field(min_length=1, max_length=120)
    description: str = Field(default="", max_length=2000)

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: str) -> str:
        return _non_blank_title(value)


class UpdateProjectRequest(ApiModel):
    title: str | None = Field(default=None, min_length=1, max_length=120)
    description: str | None = Field(default=None, max_length=2000)
    status: ProjectStatus | None = None

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return _non_blank_title(value)


class UpdateMemberRoleRequest(ApiModel):
    role: TenantRole


class CreateInviteRequest(ApiModel):
    email: EmailStr
    role: TenantRole = TenantRole.TENANT_USER


class AcceptInviteRequest(ApiModel):
    token: str = Field(min_length=16, max_length=256)


class SelectTenantRequest(ApiModel):
    tenant_id: str = Field(min_length=1, max_length=64)


class AssignProjectMemberRequest(ApiModel):
    user_id: str = Field(min_length=1, max_length=64)
    role: ProjectAccessRole


class SavedViewFilters(ApiModel):
    status: ProjectStatus | None = None
    search: str | None = Field(default=None, max_length=120)


class CreateSavedViewRequest(ApiModel):
    name: str = Field(min_length=2, max_length=60)
    filters: SavedViewFilters = Field(default_factory=SavedViewFilters)
    is_pinned: bool = False

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            msg = "Name must be at least 2 characters"
            raise ValueError(msg)
        return value


class PinSavedViewRequest(ApiModel):
    is_pinned: bool


# --- Responses ---


class UserOut(ApiModel):
    id: str
    email: str
    name: str
    image_url: str
    platform_role: PlatformRole
    last_signed_in_at: datetime | None = None


class TenantOut(ApiModel):
    id: str
    name: str
    slug: str
    status: TenantStatus
    created_by_user_id: str
    meta: dict[str, Any] = Field(default_factory=dict, serialization_alias="metadata")
    created_at: datetime
    updated_at: datetime


class TenantPageOut(ApiModel):
    items: list[TenantOut]
    total: int
    active: int
    suspended: int
    limit: int
    offset: int


class MembershipOut(ApiModel):
    id: str
    tenant_id: str
    user_id: str
    role: TenantRole
    status: MembershipStatus
    created_at: datetime
    updated_at: datetime


class MyTenantOut(ApiModel):
    tenant_id: str
    name: str
    slug: str
    status: TenantStatus
    role: TenantRole
    membership_status: MembershipStatus


class MemberOut(ApiModel):
    user_id: str
    email: str
    name: str
    image_url: str
    role: TenantRole
    status: MembershipStatus
    joined_at: datetime


class ProjectOut(ApiModel):
    id: str
    tenant_id: str
    title: str
    description: str
    status: ProjectStatus
    deleted_at: datetime | None = None
    created_by_user_id: str
    updated_by_user_id: str | None = None
    created_at: datetime
    updated_at: datetime


class ProjectMemberOut(ApiModel):
    id: str
    project_id: str
    user_id: str
    email: str = ""
    name: str = ""
    role: ProjectAccessRole
    status: ProjectMemberStatus
    created_at: datetime
    updated_at: datetime


class SavedViewOut(ApiModel):
    id: str
    name: str
    filters: SavedViewFilters
    is_pinned: bool
    created_at: datetime
    updated_at: datetime


class InviteOut(ApiModel):
    id: str
    tenant_id: str
    email: str
    role: TenantRole
    status: InviteStatus
    invited_by_user_id: str
    accepted_by_user_id: str | None = None
    expires_at: datetime
    created_at: datetime


class CreatedInviteOut(ApiModel):
    invite: InviteOut
    token: str


class AuditLogOut(ApiModel):
    id: str
    tenant_id: str
    user_id: str
    action: str
    resource_type: str
    resource_id: str
    details_json: str
    request_id: str
    created_at: datetime


class TenantStatsOut(ApiModel):
    active_projects: int
    archived_projects: int
    members: int


class PlatformStatsOut(ApiModel):
    total_tenants: int
    active_tenants: int
    total_projects: int
