"""add_permission_requests_table

Revision ID: 9c4e27d81f3a
Revises: 6b1f0c2ad4e7
Create Date: 2026-10-18 10:00:00.000000+00:00

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "9c4e27d81f3a"
down_revision: Union[str, Sequence[str], None] = "6b1f0c2ad4e7"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create permission_requests."""
    op.create_table(
        "permission_requests",
        sa.Column("id", sa.Uuid(), nullable=False),
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
        sa.Column("principal_id", sa.String(length=255), nullable=False),
        sa.Column("permission", sa.String(length=100), nullable=True),
        sa.Column("bundle_id", sa.Uuid(), nullable=True),
        sa.Column("resource_type", sa.String(length=100), nullable=True),
        sa.Column("resource_id", sa.String(length=255), nullable=True),
        sa.Column("justification", sa.Text(), nullable=False),
        sa.Column(
            "status",
            sa.String(length=20),
            server_default="pending",
            nullable=False,
        ),
        sa.Column("requested_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed_by", sa.String(length=255), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("review_notes", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_permission_requests_principal_id"),
        "permission_requests",
        ["principal_id"],
    )
    op.create_index(
        "ix_permission_requests_status_requested_at",
        "permission_requests",
        ["status", "requested_at"],
    )


def downgrade() -> None:
    """Drop permission_requests."""
    op.drop_index("ix_permission_requests_status_requested_at", table_name="permission_requests")
    op.drop_index(op.f("ix_permission_requests_principal_id"), table_name="permission_requests")
    op.drop_table("permission_requests")
