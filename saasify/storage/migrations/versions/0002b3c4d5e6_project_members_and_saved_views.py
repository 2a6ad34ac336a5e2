"""project members and saved views

Revision ID: 0002b3c4d5e6
Revises: 0001a2b3c4d5
Create Date: 2026-10-19 15:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
import sqlmodel.sql.sqltypes
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0002b3c4d5e6"
down_revision: str | Sequence[str] | None = "0001a2b3c4d5"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_str = sqlmodel.sql.sqltypes.AutoString


def upgrade() -> None:
    """Create project_members and saved_views."""
    op.create_table(
        "project_members",
        sa.Column("id", _str(), nullable=False),
        sa.Column("tenant_id", _str(), nullable=False),
        sa.Column("project_id", _str(), nullable=False),
        sa.Column("user_id", _str(), nullable=False),
        sa.Column("role", _str(), nullable=False, server_default="viewer"),
        sa.Column("status", _str(), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "tenant_id", "project_id", "user_id", name="uq_project_members_tenant_project_user"
        ),
    )
    op.create_index(op.f("ix_project_members_tenant_id"), "project_members", ["tenant_id"])
    op.create_index(op.f("ix_project_members_project_id"), "project_members", ["project_id"])
    op.create_index(op.f("ix_project_members_user_id"), "project_members", ["user_id"])
    op.create_index(op.f("ix_project_members_status"), "project_members", ["status"])

    op.create_table(
        "saved_views",
        sa.Column("id", _str(), nullable=False),
        sa.Column("tenant_id", _str(), nullable=False),
        sa.Column("user_id", _str(), nullable=False),
        sa.Column("name", _str(), nullable=False),
        sa.Column("filters", sa.JSON(), nullable=False),
        sa.Column("is_pinned", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_saved_views_tenant_id"), "saved_views", ["tenant_id"])
    op.create_index(op.f("ix_saved_views_user_id"), "saved_views", ["user_id"])


def downgrade() -> None:
    """Drop project_members and saved_views."""
    for table in ("saved_views", "project_members"):
        op.drop_table(table)
