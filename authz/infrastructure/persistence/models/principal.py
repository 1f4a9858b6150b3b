"""Principal database model (role mirror of identity provider users)."""

from typing import Any

from sqlalchemy import Boolean, String, false
from sqlalchemy.orm import Mapped, mapped_column

from authz.infrastructure.persistence.base import BaseMutableModel, JSONType


class Principal(BaseMutableModel):
    """Application database record for a principal.

    The role column is the system-of-record value; the identity provider
    profile mirrors it.

    Indexes:
        - ix_principals_external_id: Unique identity provider id lookup
    """

    __tablename__ = "principals"

    external_id: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
        comment="Identity provider user id",
    )
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    first_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="user",
        server_default="user",
    )
    is_deleted: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )
    last_role_sync: Mapped[dict[str, Any] | None] = mapped_column(
        JSONType,
        nullable=True,
        comment="Source and timestamp of the last role write",
    )
