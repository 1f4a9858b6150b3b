"""PermissionRequestRepository - SQLAlchemy implementation.

Maps between PermissionRequest entities and permission_requests rows.
Raises SQLAlchemy exceptions; the application service converts them.
"""

from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from authz.domain.entities import PermissionRequest
from authz.domain.enums import PermissionRequestStatus
from authz.infrastructure.persistence.base import as_utc
from authz.infrastructure.persistence.models.permission_request import (
    PermissionRequest as PermissionRequestModel,
)


def _filtered(
    stmt: Select, status: PermissionRequestStatus | None, principal_id: str | None
) -> Select:
    if status is not None:
        stmt = stmt.where(PermissionRequestModel.status == status.value)
    if principal_id is not None:
        stmt = stmt.where(PermissionRequestModel.principal_id == principal_id)
    return stmt


class PermissionRequestRepository:
    """SQLAlchemy implementation of PermissionRequestRepository protocol.

    Does NOT inherit from the protocol (structural typing).

    Attributes:
        session: SQLAlchemy async session for database operations.

    Example:
        >>> async with database.get_session() as session:
        ...     repo = PermissionRequestRepository(session)
        ...     queue = await repo.list_requests(
        ...         status=PermissionRequestStatus.PENDING, limit=50
        ...     )
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add(self, request: PermissionRequest) -> PermissionRequest:
        model = self._to_model(request)
        self.session.add(model)
        try:
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        await self.session.refresh(model)
        return self._to_domain(model)

    async def find_by_id(self, request_id: UUID) -> PermissionRequest | None:
        model = await self.session.get(PermissionRequestModel, request_id)
        return self._to_domain(model) if model is not None else None

    async def update(self, request: PermissionRequest) -> PermissionRequest:
        """Persist the status and review fields.

        Raises:
            NoResultFound: If the request doesn't exist.
        """
        stmt = select(PermissionRequestModel).where(PermissionRequestModel.id == request.id)
        result = await self.session.execute(stmt)
        model = result.scalar_one()

        model.status = request.status.value
        model.reviewed_by = request.reviewed_by
        model.reviewed_at = request.reviewed_at
        model.review_notes = request.review_notes

        await self.session.commit()
        await self.session.refresh(model)
        return self._to_domain(model)

    async def list_requests(
        self,
        *,
        status: PermissionRequestStatus | None = None,
        principal_id: str | None = None,
        limit: int,
        offset: int = 0,
    ) -> list[PermissionRequest]:
        stmt = _filtered(select(PermissionRequestModel), status, principal_id)
        stmt = (
            stmt.order_by(
                PermissionRequestModel.requested_at.desc(), PermissionRequestModel.id
            )
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return [self._to_domain(model) for model in result.scalars().all()]

    async def count_requests(
        self,
        *,
        status: PermissionRequestStatus | None = None,
        principal_id: str | None = None,
    ) -> int:
        stmt = _filtered(
            select(func.count()).select_from(PermissionRequestModel), status, principal_id
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def has_pending(
        self,
        principal_id: str,
        *,
        permission: str | None = None,
        bundle_id: UUID | None = None,
        resource_type: str | None = None,
        resource_id: str | None = None,
    ) -> bool:
        """Check for a pending request with the same target."""
        stmt = (
            select(PermissionRequestModel.id)
            .where(
                PermissionRequestModel.principal_id == principal_id,
                PermissionRequestModel.status == PermissionRequestStatus.PENDING.value,
                PermissionRequestModel.permission.is_(None)
                if permission is None
                else PermissionRequestModel.permission == permission,
                PermissionRequestModel.bundle_id.is_(None)
                if bundle_id is None
                else PermissionRequestModel.bundle_id == bundle_id,
                PermissionRequestModel.resource_type.is_(None)
                if resource_type is None
                else PermissionRequestModel.resource_type == resource_type,
                PermissionRequestModel.resource_id.is_(None)
                if resource_id is None
                else PermissionRequestModel.resource_id == resource_id,
            )
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    def _to_domain(self, model: PermissionRequestModel) -> PermissionRequest:
        """Convert database model to domain entity."""
        return PermissionRequest(
            id=model.id,
            principal_id=model.principal_id,
            justification=model.justification,
            status=PermissionRequestStatus(model.status),
            requested_at=as_utc(model.requested_at),  # type: ignore[arg-type]
            permission=model.permission,
            bundle_id=model.bundle_id,
            resource_type=model.resource_type,
            resource_id=model.resource_id,
            expires_at=as_utc(model.expires_at),
            reviewed_by=model.reviewed_by,
            reviewed_at=as_utc(model.reviewed_at),
            review_notes=model.review_notes,
        )

    def _to_model(self, request: PermissionRequest) -> PermissionRequestModel:
        """Convert domain entity to database model."""
        return PermissionRequestModel(
            id=request.id,
            principal_id=request.principal_id,
            justification=request.justification,
            status=request.status.value,
            requested_at=request.requested_at,
            permission=request.permission,
            bundle_id=request.bundle_id,
            resource_type=request.resource_type,
            resource_id=request.resource_id,
            expires_at=request.expires_at,
            reviewed_by=request.reviewed_by,
            reviewed_at=request.reviewed_at,
            review_notes=request.review_notes,
        )
