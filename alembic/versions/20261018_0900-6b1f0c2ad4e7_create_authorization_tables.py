"""create_authorization_tables

Revision ID: 6b1f0c2ad4e7
Revises:
Create Date: 2026-10-18 09:00:00.000000+00:00

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "6b1f0c2ad4e7"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Create principals, resource_permissions, permission_bundles and permission_audit_logs."""
    # Principal role mirror
    op.create_table(
        "principals",
        sa.Column("id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.Column(
            "external_id",
            sa.String(length=255),
            nullable=False,
            comment="Identity provider user id",
        ),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("first_name", sa.String(length=255), nullable=True),
        sa.Column("last_name", sa.String(length=255), nullable=True),
        sa.Column(
            "role",
            sa.String(length=50),
            server_default="user",
            nullable=False,
        ),
        sa.Column(
            "is_deleted",
            sa.Boolean(),
            server_default=sa.false(),
            nullable=False,
        ),
        sa.Column(
            "last_role_sync",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=True,
            comment="Source and timestamp of the last role write",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_principals_external_id"), "principals", ["external_id"], unique=True
    )

    # Resource-scoped grants
    op.create_table(
        "resource_permissions",
        sa.Column("id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.Column("principal_id", sa.String(length=255), nullable=False),
        sa.Column("permission", sa.String(length=100), nullable=False),
        sa.Column("resource_type", sa.String(length=100), nullable=False),
        sa.Column("resource_id", sa.String(length=255), nullable=False),
        sa.Column("active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("granted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("granted_by", sa.String(length=255), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_by", sa.String(length=255), nullable=True),
        sa.Column("revocation_reason", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_resource_permissions_principal_id"),
        "resource_permissions",
        ["principal_id"],
    )
    # One active grant per (principal, permission, resource) tuple
    op.create_index(
        "uq_resource_permissions_active_tuple",
        "resource_permissions",
        ["principal_id", "permission", "resource_type", "resource_id"],
        unique=True,
        postgresql_where=sa.text("active"),
    )
    op.create_index(
        "ix_resource_permissions_active_expires_at",
        "resource_permissions",
        ["active", "expires_at"],
    )
    op.create_index(
        "ix_resource_permissions_resource",
        "resource_permissions",
        ["permission", "resource_type", "resource_id"],
    )

    # Bundles
    op.create_table(
        "permission_bundles",
        sa.Column("id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("permissions", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    # Append-only audit trail
    op.create_table(
        "permission_audit_logs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("principal_id", sa.String(length=255), nullable=False),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("actor", sa.String(length=255), nullable=True),
        sa.Column("context", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_permission_audit_logs_action"), "permission_audit_logs", ["action"]
    )
    op.create_index(
        "ix_permission_audit_logs_principal_created",
        "permission_audit_logs",
        ["principal_id", "created_at"],
    )


def downgrade() -> None:
    """Drop all authorization tables."""
    op.drop_index("ix_permission_audit_logs_principal_created", table_name="permission_audit_logs")
    op.drop_index(op.f("ix_permission_audit_logs_action"), table_name="permission_audit_logs")
    op.drop_table("permission_audit_logs")

    op.drop_table("permission_bundles")

    op.drop_index("ix_resource_permissions_resource", table_name="resource_permissions")
    op.drop_index("ix_resource_permissions_active_expires_at", table_name="resource_permissions")
    op.drop_index("uq_resource_permissions_active_tuple", table_name="resource_permissions")
    op.drop_index(op.f("ix_resource_permissions_principal_id"), table_name="resource_permissions")
    op.drop_table("resource_permissions")

    op.drop_index(op.f("ix_principals_external_id"), table_name="principals")
    op.drop_table("principals")
