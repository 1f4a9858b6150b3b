"""Permission audit log entry entity."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID


@dataclass(frozen=True)
class PermissionAuditEntry:
    """Immutable audit record of a permission change.

    Attributes:
        id: Entry identifier.
        created_at: Record time.
        principal_id: Affected principal.
        action: AuditAction value.
        actor: Acting principal or "system".
        context: Action-specific context.
    """

    id: UUID
    created_at: datetime
    principal_id: str
    action: str
    actor: str | None = None
    context: dict[str, Any] = field(default_factory=dict)
