"""Permission bundle model."""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from authz.infrastructure.persistence.base import BaseMutableModel, JSONType


class PermissionBundle(BaseMutableModel):
    """Named set of permission identifiers (JSON list)."""

    __tablename__ = "permission_bundles"

    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    permissions: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
