"""Permission audit trail adapters."""

from authz.infrastructure.audit.database_adapter import DatabaseAuditAdapter

__all__ = ["DatabaseAuditAdapter"]
