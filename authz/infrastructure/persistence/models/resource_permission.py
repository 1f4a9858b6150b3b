"""Resource-scoped permission grant model."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, String, Text, text, true
from sqlalchemy.orm import Mapped, mapped_column

from authz.infrastructure.persistence.base import BaseMutableModel


class ResourcePermission(BaseMutableModel):
    """Permission bound to one resource instance.

    Rows are never deleted; revocation flips `active`.

    Indexes:
        - uq_resource_permissions_active_tuple: Partial unique index allowing
          one active grant per (principal, permission, resource) tuple
        - ix_resource_permissions_active_expires_at: Reconciler scan
        - ix_resource_permissions_resource: Reverse lookup by resource
    """

    __tablename__ = "resource_permissions"

    principal_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    permission: Mapped[str] = mapped_column(String(100), nullable=False)
    resource_type: Mapped[str] = mapped_column(String(100), nullable=False)
    resource_id: Mapped[str] = mapped_column(String(255), nullable=False)
    active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )
    granted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    granted_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    revoked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    revoked_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    revocation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index(
            "uq_resource_permissions_active_tuple",
            "principal_id",
            "permission",
            "resource_type",
            "resource_id",
            unique=True,
            postgresql_where=text("active"),
            sqlite_where=text("active = 1"),
        ),
        Index("ix_resource_permissions_active_expires_at", "active", "expires_at"),
        Index(
            "ix_resource_permissions_resource",
            "permission",
            "resource_type",
            "resource_id",
        ),
    )
