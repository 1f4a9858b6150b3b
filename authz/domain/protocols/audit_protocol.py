"""Permission audit trail port.

Append-only record of every change to a principal's permission facts.

Usage:
    result = await audit.record(
        action=AuditAction.PERMISSIONS_GRANTED,
        principal_id=principal_id,
        actor=granted_by,
        context={"permissions": added, "reason": reason},
    )
"""

from typing import Any, Protocol

from authz.core.result import Result
from authz.domain.entities import PermissionAuditEntry
from authz.domain.enums import AuditAction
from authz.domain.errors import AuditError


class PermissionAuditProtocol(Protocol):
    """Protocol for permission audit trails.

    Error Handling:
        All methods return Result types. Callers treat a failed record as a
        warning; the audited change has already happened.
    """

    async def record(
        self,
        *,
        action: AuditAction,
        principal_id: str,
        actor: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> Result[None, AuditError]:
        """Append an audit entry.

        Args:
            action: What happened.
            principal_id: Affected principal.
            actor: Who did it ("system" for automated jobs).
            context: Action-specific details.

        Returns:
            Result with None on success, or AuditError.
        """
        ...

    async def list_permission_audit_log(
        self,
        principal_id: str | None = None,
        *,
        limit: int = 100,
    ) -> Result[list[PermissionAuditEntry], AuditError]:
        """Query audit entries, newest first.

        Args:
            principal_id: Restrict to one principal (None for all).
            limit: Maximum entries.

        Returns:
            Result with entries, or AuditError.
        """
        ...
