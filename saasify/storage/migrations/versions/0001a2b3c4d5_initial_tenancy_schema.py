"""initial tenancy schema

Revision ID: 0001a2b3c4d5
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
import sqlmodel.sql.sqltypes
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001a2b3c4d5"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_str = sqlmodel.sql.sqltypes.AutoString


def upgrade() -> None:
    """Create users, tenants, memberships, projects, invites and audit_logs."""
    op.create_table(
        "users",
        sa.Column("id", _str(), nullable=False),
        sa.Column("external_id", _str(), nullable=False),
        sa.Column("email", _str(), nullable=False),
        sa.Column("name", _str(), nullable=False, server_default=""),
        sa.Column("image_url", _str(), nullable=False, server_default=""),
        sa.Column("platform_role", _str(), nullable=False, server_default="user"),
        sa.Column("last_signed_in_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_external_id"), "users", ["external_id"], unique=True)
    op.create_index(op.f("ix_users_email"), "users", ["email"])
    op.create_index(op.f("ix_users_platform_role"), "users", ["platform_role"])

    op.create_table(
        "tenants",
        sa.Column("id", _str(), nullable=False),
        sa.Column("name", _str(), nullable=False),
        sa.Column("slug", _str(), nullable=False),
        sa.Column("status", _str(), nullable=False, server_default="active"),
        sa.Column("created_by_user_id", _str(), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["created_by_user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_tenants_slug"), "tenants", ["slug"], unique=True)
    op.create_index(op.f("ix_tenants_status"), "tenants", ["status"])
    op.create_index(op.f("ix_tenants_created_by_user_id"), "tenants", ["created_by_user_id"])

    op.create_table(
        "memberships",
        sa.Column("id", _str(), nullable=False),
        sa.Column("tenant_id", _str(), nullable=False),
        sa.Column("user_id", _str(), nullable=False),
        sa.Column("role", _str(), nullable=False, server_default="tenant_user"),
        sa.Column("status", _str(), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "user_id", name="uq_memberships_tenant_user"),
    )
    op.create_index(op.f("ix_memberships_tenant_id"), "memberships", ["tenant_id"])
    op.create_index(op.f("ix_memberships_user_id"), "memberships", ["user_id"])
    op.create_index(op.f("ix_memberships_role"), "memberships", ["role"])
    op.create_index(op.f("ix_memberships_status"), "memberships", ["status"])

    op.create_table(
        "projects",
        sa.Column("id", _str(), nullable=False),
        sa.Column("tenant_id", _str(), nullable=False),
        sa.Column("title", _str(), nullable=False),
        sa.Column("description", _str(), nullable=False, server_default=""),
        sa.Column("status", _str(), nullable=False, server_default="active"),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("created_by_user_id", _str(), nullable=False),
        sa.Column("updated_by_user_id", _str(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["created_by_user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["updated_by_user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_projects_tenant_id"), "projects", ["tenant_id"])
    op.create_index(op.f("ix_projects_status"), "projects", ["status"])
    op.create_index(op.f("ix_projects_deleted_at"), "projects", ["deleted_at"])

    op.create_table(
        "invites",
        sa.Column("id", _str(), nullable=False),
        sa.Column("tenant_id", _str(), nullable=False),
        sa.Column("email", _str(), nullable=False),
        sa.Column("role", _str(), nullable=False, server_default="tenant_user"),
        sa.Column("status", _str(), nullable=False, server_default="pending"),
        sa.Column("token_hash", _str(), nullable=False),
        sa.Column("invited_by_user_id", _str(), nullable=False),
        sa.Column("accepted_by_user_id", _str(), nullable=True),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["invited_by_user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["accepted_by_user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_invites_tenant_id"), "invites", ["tenant_id"])
    op.create_index(op.f("ix_invites_email"), "invites", ["email"])
    op.create_index(op.f("ix_invites_status"), "invites", ["status"])
    op.create_index(op.f("ix_invites_token_hash"), "invites", ["token_hash"], unique=True)

    op.create_table(
        "audit_logs",
        sa.Column("id", _str(), nullable=False),
        sa.Column("tenant_id", _str(), nullable=False),
        sa.Column("user_id", _str(), nullable=False, server_default=""),
        sa.Column("action", _str(), nullable=False),
        sa.Column("resource_type", _str(), nullable=False, server_default=""),
        sa.Column("resource_id", _str(), nullable=False, server_default=""),
        sa.Column("details_json", _str(), nullable=False, server_default="{}"),
        sa.Column("request_id", _str(), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_audit_logs_tenant_id"), "audit_logs", ["tenant_id"])
    op.create_index(op.f("ix_audit_logs_action"), "audit_logs", ["action"])
    op.create_index(op.f("ix_audit_logs_created_at"), "audit_logs", ["created_at"])


def downgrade() -> None:
    """Drop all tenancy tables."""
    for table in ("audit_logs", "invites", "projects", "memberships", "tenants", "users"):
        op.drop_table(table)
