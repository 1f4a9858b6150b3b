"""Permission request model."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from authz.infrastructure.persistence.base import BaseMutableModel


class PermissionRequest(BaseMutableModel):
    """Self-service request for a permission or a bundle.

    `bundle_id` is not a foreign key: a deleted bundle leaves its requests
    readable, and approving one fails with BUNDLE_NOT_FOUND.

    Indexes:
        - ix_permission_requests_principal_id: Requester's own history
        - ix_permission_requests_status_requested_at: Review queue
    """

    __tablename__ = "permission_requests"

    principal_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    permission: Mapped[str | None] = mapped_column(String(100), nullable=True)
    bundle_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    resource_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    resource_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    justification: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending", server_default="pending"
    )
    requested_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    reviewed_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    review_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_permission_requests_status_requested_at", "status", "requested_at"),
    )
