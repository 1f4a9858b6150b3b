"""Base model and mixins for all database entities.

- BaseModel: Base class for ALL models (id, created_at)
- TimestampMixin: Adds updated_at
- BaseMutableModel: Base for mutable models (combines above)

Domain entities never inherit from these; repositories map between them.

Architecture:
    BaseModel (id, created_at)
        ├── BaseMutableModel (+ updated_at)
        │   ├── Principal
        │   ├── ResourcePermission
        │   ├── PermissionBundle
        │   └── PermissionRequest
        └── PermissionAuditLog (append-only, no updated_at)
"""

from datetime import UTC, datetime
from uuid import UUID as PythonUUID, uuid4

from sqlalchemy import JSON, DateTime, Uuid, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

JSONType = JSON().with_variant(JSONB(), "postgresql")
"""JSON column type (JSONB on PostgreSQL)."""


def as_utc(value: datetime | None) -> datetime | None:
    """Normalize a datetime read back from the driver to aware UTC.

    Drivers without timezone support (SQLite) return naive values that were
    written as UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class BaseModel(DeclarativeBase):
    """Base class for all database models.

    Provides:
    - id: UUID primary key (auto-generated)
    - created_at: Timestamp when record was created (database default)
    """

    __abstract__ = True

    id: Mapped[PythonUUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(id={self.id})>"


class TimestampMixin:
    """Mixin for mutable models that track updates."""

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


class BaseMutableModel(TimestampMixin, BaseModel):
    """Base class for mutable database models (id, created_at, updated_at)."""

    __abstract__ = True
