"""Permission audit log model (append-only)."""

from typing import Any

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from authz.infrastructure.persistence.base import BaseModel, JSONType


class PermissionAuditLog(BaseModel):
    """Immutable record of a permission change.

    No updated_at: entries are never modified.

    Indexes:
        - ix_permission_audit_logs_principal_created: Per-principal history
    """

    __tablename__ = "permission_audit_logs"

    principal_id: Mapped[str] = mapped_column(String(255), nullable=False)
    action: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    actor: Mapped[str | None] = mapped_column(String(255), nullable=True)
    context: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    __table_args__ = (
        Index("ix_permission_audit_logs_principal_created", "principal_id", "created_at"),
    )
