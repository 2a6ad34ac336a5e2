"""Enums and type aliases for Saasify."""

from enum import StrEnum


class PlatformRole(StrEnum):
    PLATFORM_ADMIN = "platform_admin"
    USER = "user"


class TenantRole(StrEnum):
    TENANT_ADMIN = "tenant_admin"
    TENANT_USER = "tenant_user"


class TenantStatus(StrEnum):
    ACTIVE = "active"
    SUSPENDED = "suspended"


class MembershipStatus(StrEnum):
    ACTIVE = "active"
    INVITED = "invited"
    REMOVED = "removed"


class ProjectStatus(StrEnum):
    ACTIVE = "active"
    ARCHIVED = "archived"


class ProjectAccessRole(StrEnum):
    VIEWER = "viewer"
    EDITOR = "editor"


class ProjectMemberStatus(StrEnum):
    ACTIVE = "active"
    REMOVED = "removed"


class InviteStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REVOKED = "revoked"


class TenantContextStatus(StrEnum):
    OK = "ok"
    MISSING_TENANT = "missing_tenant"
    INVALID_TENANT = "invalid_tenant"
    TENANT_NOT_FOUND = "tenant_not_found"
    TENANT_SUSPENDED = "tenant_suspended"
    NOT_A_MEMBER = "not_a_member"


_ROLE_RANK = {
    TenantRole.TENANT_USER: 1,
    TenantRole.TENANT_ADMIN: 2,
}


def role_rank(role: TenantRole) -> int:
    """Higher rank means more privilege within a tenant."""
    return _ROLE_RANK[TenantRole(role)]
