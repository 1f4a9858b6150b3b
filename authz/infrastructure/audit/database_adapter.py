"""SQLAlchemy implementation of PermissionAuditProtocol.

Append-only audit of permission changes in the application database:
- Async SQLAlchemy for database operations
- Result types for error handling (no exceptions)
- JSON storage for action-specific context

Usage:
    adapter = DatabaseAuditAdapter(session)

    result = await adapter.record(
        action=AuditAction.RESOURCE_PERMISSION_GRANTED,
        principal_id="user_1",
        actor="user_admin",
        context={"permission": "listings:edit_any", "resource_id": "l-42"},
    )
"""

from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from authz.core.enums import ErrorCode
from authz.core.result import Failure, Result, Success
from authz.domain.entities import PermissionAuditEntry
from authz.domain.enums import AuditAction
from authz.domain.errors import AuditError
from authz.domain.protocols import ClockProtocol
from authz.infrastructure.persistence.base import as_utc
from authz.infrastructure.persistence.models.permission_audit_log import (
    PermissionAuditLog as PermissionAuditLogModel,
)
from authz.infrastructure.time import SystemClock


class DatabaseAuditAdapter:
    """Database audit trail adapter.

    Stateless: all state lives in the database. Entries are only ever
    inserted.

    Attributes:
        session: SQLAlchemy async session for database operations.
    """

    def __init__(self, session: AsyncSession, clock: ClockProtocol | None = None) -> None:
        """Initialize adapter with database session.

        Args:
            session: SQLAlchemy async session.
            clock: Time source for created_at (defaults to SystemClock).
        """
        self.session = session
        self._clock: ClockProtocol = clock or SystemClock()

    async def record(
        self,
        *,
        action: AuditAction,
        principal_id: str,
        actor: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> Result[None, AuditError]:
        """Record an immutable audit entry.

        Args:
            action: What happened.
            principal_id: Affected principal.
            actor: Who did it ("system" for automated jobs).
            context: Additional context (stored as JSON).

        Returns:
            Success(None) if recorded, Failure(AuditError) if the insert failed.
        """
        try:
            entry = PermissionAuditLogModel(
                created_at=self._clock.now(),
                principal_id=principal_id,
                action=action.value,
                actor=actor,
                context=context or {},
            )
            self.session.add(entry)
            await self.session.commit()
            return Success(value=None)

        except SQLAlchemyError as e:
            await self.session.rollback()
            return Failure(
                error=AuditError(
                    code=ErrorCode.AUDIT_RECORD_FAILED,
                    message=f"Failed to record audit log: {e}",
                    details={
                        "action": action.value,
                        "principal_id": principal_id,
                        "error_type": type(e).__name__,
                    },
                )
            )

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
            Success(list[PermissionAuditEntry]) or Failure(AuditError).
        """
        try:
            stmt = select(PermissionAuditLogModel)
            if principal_id is not None:
                stmt = stmt.where(PermissionAuditLogModel.principal_id == principal_id)
            stmt = stmt.order_by(PermissionAuditLogModel.created_at.desc()).limit(limit)

            result = await self.session.execute(stmt)
            return Success(
                value=[
                    PermissionAuditEntry(
                        id=row.id,
                        created_at=as_utc(row.created_at),  # type: ignore[arg-type]
                        principal_id=row.principal_id,
                        action=row.action,
                        actor=row.actor,
                        context=dict(row.context or {}),
                    )
                    for row in result.scalars().all()
                ]
            )

        except SQLAlchemyError as e:
            return Failure(
                error=AuditError(
                    code=ErrorCode.AUDIT_QUERY_FAILED,
                    message=f"Failed to query audit log: {e}",
                    details={"principal_id": principal_id, "error_type": type(e).__name__},
                )
            )
