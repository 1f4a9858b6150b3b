"""Audit trail error types.

Used when audit trail recording or querying fails.

Usage:
    from authz.domain.errors import AuditError
    from authz.core.enums import ErrorCode

    return Failure(error=AuditError(
        code=ErrorCode.AUDIT_RECORD_FAILED,
        message="Failed to record audit entry: database connection lost",
    ))
"""

from dataclasses import dataclass

from authz.core.errors import DomainError


@dataclass(frozen=True, slots=True, kw_only=True)
class AuditError(DomainError):
    """Audit system failure (database error, connection loss, etc.)."""

    pass  # Inherits all fields from DomainError
