"""SQLModel database table models."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, Column, DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel

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


def _utc_now() -> datetime:
    """Return current UTC time as naive datetime for TIMESTAMP WITHOUT TIME ZONE columns.

    Every datetime field declares ``sa_type=DateTime()`` so naive values bind
    the same way whatever column type SQLModel would infer.
    """
    return datetime.now(UTC).replace(tzinfo=None)


def _new_uuid() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Identity and tenancy
# ---------------------------------------------------------------------------


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    external_id: str = Field(unique=True, index=True)  # Clerk user id
    email: str = Field(index=True)
    name: str = ""
    image_url: str = ""
    platform_role: str = Field(default=PlatformRole.USER, index=True)
    last_signed_in_at: datetime | None = Field(default=None, sa_type=DateTime())
    created_at: datetime = Field(default_factory=_utc_now, sa_type=DateTime())
    updated_at: datetime = Field(default_factory=_utc_now, sa_type=DateTime())


class Tenant(SQLModel, table=True):
    __tablename__ = "tenants"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    name: str
    slug: str = Field(unique=True, index=True)
    status: str = Field(default=TenantStatus.ACTIVE, index=True)
    created_by_user_id: str = Field(foreign_key="users.id", index=True)
    meta: dict[str, Any] = Field(
        default_factory=dict, sa_column=Column("metadata", JSON, nullable=False)
    )
    created_at: datetime = Field(default_factory=_utc_now, sa_type=DateTime())
    updated_at: datetime = Field(default_factory=_utc_now, sa_type=DateTime())


class Membership(SQLModel, table=True):
    __tablename__ = "memberships"
    __table_args__ = (UniqueConstraint("tenant_id", "user_id", name="uq_memberships_tenant_user"),)

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    tenant_id: str = Field(foreign_key="tenants.id", index=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    role: str = Field(default=TenantRole.TENANT_USER, index=True)
    status: str = Field(default=MembershipStatus.ACTIVE, index=True)
    created_at: datetime = Field(default_factory=_utc_now, sa_type=DateTime())
    updated_at: datetime = Field(default_factory=_utc_now, sa_type=DateTime())


# ---------------------------------------------------------------------------
# Tenant-scoped data
# ---------------------------------------------------------------------------


class Project(SQLModel, table=True):
    __tablename__ = "projects"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    tenant_id: str = Field(foreign_key="tenants.id", index=True)
    title: str
    description: str = ""
    status: str = Field(default=ProjectStatus.ACTIVE, index=True)
    deleted_at: datetime | None = Field(default=None, sa_type=DateTime(), index=True)
    created_by_user_id: str = Field(foreign_key="users.id")
    updated_by_user_id: str | None = Field(default=None, foreign_key="users.id")
    created_at: datetime = Field(default_factory=_utc_now, sa_type=DateTime())
    updated_at: datetime = Field(default_factory=_utc_now, sa_type=DateTime())


class ProjectMember(SQLModel, table=True):
    """Per-project access grant for a tenant member."""

    __tablename__ = "project_members"
    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "project_id", "user_id", name="uq_project_members_tenant_project_user"
        ),
    )

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    tenant_id: str = Field(foreign_key="tenants.id", index=True)
    project_id: str = Field(foreign_key="projects.id", index=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    role: str = Field(default=ProjectAccessRole.VIEWER)
    status: str = Field(default=ProjectMemberStatus.ACTIVE, index=True)
    created_at: datetime = Field(default_factory=_utc_now, sa_type=DateTime())
    updated_at: datetime = Field(default_factory=_utc_now, sa_type=DateTime())


class SavedView(SQLModel, table=True):
    """A user's named project-list filter inside one tenant."""

    __tablename__ = "saved_views"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    tenant_id: str = Field(foreign_key="tenants.id", index=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    name: str
    filters: dict[str, Any] = Field(
        default_factory=dict, sa_column=Column("filters", JSON, nullable=False)
    )
    is_pinned: bool = False
    created_at: datetime = Field(default_factory=_utc_now, sa_type=DateTime())
    updated_at: datetime = Field(default_factory=_utc_now, sa_type=DateTime())


class Invite(SQLModel, table=True):
    __tablename__ = "invites"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    tenant_id: str = Field(foreign_key="tenants.id", index=True)
    email: str = Field(index=True)
    role: str = Field(default=TenantRole.TENANT_USER)
    status: str = Field(default=InviteStatus.PENDING, index=True)
    token_hash: str = Field(unique=True, index=True)
    invited_by_user_id: str = Field(foreign_key="users.id")
    accepted_by_user_id: str | None = Field(default=None, foreign_key="users.id")
    expires_at: datetime = Field(sa_type=DateTime())
    created_at: datetime = Field(default_factory=_utc_now, sa_type=DateTime())
    updated_at: datetime = Field(default_factory=_utc_now, sa_type=DateTime())


class AuditLog(SQLModel, table=True):
    __tablename__ = "audit_logs"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    tenant_id: str = Field(index=True)
    user_id: str = ""
    action: str = Field(index=True)
    resource_type: str = ""
    resource_id: str = ""
    details_json: str = "{}"
    request_id: str = ""
    created_at: datetime = Field(default_factory=_utc_now, sa_type=DateTime(), index=True)
