"""Permission bundle entity."""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID


@dataclass
class PermissionBundle:
    """A named set of permission identifiers applied atomically.

    Attributes:
        id: Bundle identifier.
        name: Unique bundle name.
        description: Human-readable description.
        permissions: Permission identifiers (order is irrelevant).
        created_at: Creation time.
        updated_at: Last modification time.
    """

    id: UUID
    name: str
    description: str | None = None
    permissions: list[str] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
