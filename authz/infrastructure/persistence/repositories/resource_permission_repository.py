"""ResourcePermissionRepository - SQLAlchemy implementation.

Maps between ResourcePermissionGrant entities and ResourcePermission rows.
Raises SQLAlchemy exceptions; the application service converts them.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import ColumnElement, and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from authz.domain.entities import ResourcePermissionGrant
from authz.infrastructure.persistence.base import as_utc
from authz.infrastructure.persistence.models.resource_permission import (
    ResourcePermission as ResourcePermissionModel,
)


def _is_effective(now: datetime) -> ColumnElement[bool]:
    return and_(
        ResourcePermissionModel.active.is_(True),
        or_(
            ResourcePermissionModel.expires_at.is_(None),
            ResourcePermissionModel.expires_at > now,
        ),
    )


def _matches_tuple(
    principal_id: str, permission: str, resource_type: str, resource_id: str
) -> ColumnElement[bool]:
    return and_(
        ResourcePermissionModel.principal_id == principal_id,
        ResourcePermissionModel.permission == permission,
        ResourcePermissionModel.resource_type == resource_type,
        ResourcePermissionModel.resource_id == resource_id,
    )


class ResourcePermissionRepository:
    """SQLAlchemy implementation of ResourcePermissionRepository protocol.

    Does NOT inherit from the protocol (structural typing).

    Attributes:
        session: SQLAlchemy async session for database operations.

    Example:
        >>> async with database.get_session() as session:
        ...     repo = ResourcePermissionRepository(session)
        ...     held = await repo.has_effective_grant("user_1", "listings:edit_any",
        ...                                          "listing", "l-42", now)
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session

    async def find_active(
        self,
        principal_id: str,
        permission: str,
        resource_type: str,
        resource_id: str,
    ) -> ResourcePermissionGrant | None:
        """Find the active grant for a tuple, expired or not."""
        stmt = select(ResourcePermissionModel).where(
            _matches_tuple(principal_id, permission, resource_type, resource_id),
            ResourcePermissionModel.active.is_(True),
        )
        result = await self.session.execute(stmt)
        model = result.scalars().first()
        return self._to_domain(model) if model is not None else None

    async def add(self, grant: ResourcePermissionGrant) -> ResourcePermissionGrant:
        """Insert a grant.

        Raises:
            IntegrityError: An active grant for the tuple already exists.
        """
        model = self._to_model(grant)
        self.session.add(model)
        try:
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        await self.session.refresh(model)
        return self._to_domain(model)

    async def update(self, grant: ResourcePermissionGrant) -> ResourcePermissionGrant:
        """Persist changed fields of an existing grant.

        Raises:
            NoResultFound: If the grant doesn't exist.
        """
        stmt = select(ResourcePermissionModel).where(ResourcePermissionModel.id == grant.id)
        result = await self.session.execute(stmt)
        model = result.scalar_one()

        model.active = grant.active
        model.granted_at = grant.granted_at
        model.granted_by = grant.granted_by
        model.reason = grant.reason
        model.expires_at = grant.expires_at
        model.revoked_at = grant.revoked_at
        model.revoked_by = grant.revoked_by
        model.revocation_reason = grant.revocation_reason

        await self.session.commit()
        await self.session.refresh(model)
        return self._to_domain(model)

    async def revoke(
        self,
        principal_id: str,
        permission: str,
        resource_type: str,
        resource_id: str,
        *,
        revoked_at: datetime,
        revoked_by: str,
        reason: str | None,
    ) -> int:
        """Deactivate active grants for a tuple.

        Returns:
            int: Number of grants deactivated (0 if none matched).
        """
        stmt = (
            update(ResourcePermissionModel)
            .where(
                _matches_tuple(principal_id, permission, resource_type, resource_id),
                ResourcePermissionModel.active.is_(True),
            )
            .values(
                active=False,
                revoked_at=revoked_at,
                revoked_by=revoked_by,
                revocation_reason=reason,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount or 0

    async def has_effective_grant(
        self,
        principal_id: str,
        permission: str,
        resource_type: str,
        resource_id: str,
        now: datetime,
    ) -> bool:
        """Check for an active, unexpired grant."""
        stmt = (
            select(ResourcePermissionModel.id)
            .where(
                _matches_tuple(principal_id, permission, resource_type, resource_id),
                _is_effective(now),
            )
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def list_effective_resource_ids(
        self, principal_id: str, permission: str, resource_type: str, now: datetime
    ) -> set[str]:
        """Resource ids the principal holds an active, unexpired grant on."""
        stmt = select(ResourcePermissionModel.resource_id).where(
            ResourcePermissionModel.principal_id == principal_id,
            ResourcePermissionModel.permission == permission,
            ResourcePermissionModel.resource_type == resource_type,
            _is_effective(now),
        )
        result = await self.session.execute(stmt)
        return set(result.scalars().all())

    async def list_effective_principal_ids(
        self, permission: str, resource_type: str, resource_id: str, now: datetime
    ) -> list[str]:
        """Distinct principals with an active, unexpired grant on a resource."""
        stmt = (
            select(ResourcePermissionModel.principal_id)
            .where(
                ResourcePermissionModel.permission == permission,
                ResourcePermissionModel.resource_type == resource_type,
                ResourcePermissionModel.resource_id == resource_id,
                _is_effective(now),
            )
            .distinct()
            .order_by(ResourcePermissionModel.principal_id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_expired_active(
        self, now: datetime, *, limit: int, after_id: UUID | None = None
    ) -> list[ResourcePermissionGrant]:
        """Active grants whose expiry has passed, in id order after the cursor."""
        stmt = select(ResourcePermissionModel).where(
            ResourcePermissionModel.active.is_(True),
            ResourcePermissionModel.expires_at.is_not(None),
            ResourcePermissionModel.expires_at <= now,
        )
        if after_id is not None:
            stmt = stmt.where(ResourcePermissionModel.id > after_id)
        stmt = stmt.order_by(ResourcePermissionModel.id).limit(limit)

        result = await self.session.execute(stmt)
        return [self._to_domain(model) for model in result.scalars().all()]

    async def deactivate_expired(
        self, grant_id: UUID, *, now: datetime, revoked_by: str, reason: str
    ) -> bool:
        """Deactivate one grant if it is still active and expired.

        Returns:
            bool: True if this call deactivated the grant.
        """
        stmt = (
            update(ResourcePermissionModel)
            .where(
                ResourcePermissionModel.id == grant_id,
                ResourcePermissionModel.active.is_(True),
                ResourcePermissionModel.expires_at <= now,
            )
            .values(
                active=False,
                revoked_at=now,
                revoked_by=revoked_by,
                revocation_reason=reason,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return (result.rowcount or 0) == 1

    def _to_domain(self, model: ResourcePermissionModel) -> ResourcePermissionGrant:
        """Convert database model to domain entity."""
        return ResourcePermissionGrant(
            id=model.id,
            principal_id=model.principal_id,
            permission=model.permission,
            resource_type=model.resource_type,
            resource_id=model.resource_id,
            active=model.active,
            granted_at=as_utc(model.granted_at),  # type: ignore[arg-type]
            granted_by=model.granted_by,
            reason=model.reason,
            expires_at=as_utc(model.expires_at),
            revoked_at=as_utc(model.revoked_at),
            revoked_by=model.revoked_by,
            revocation_reason=model.revocation_reason,
        )

    def _to_model(self, grant: ResourcePermissionGrant) -> ResourcePermissionModel:
        """Convert domain entity to database model."""
        return ResourcePermissionModel(
            id=grant.id,
            principal_id=grant.principal_id,
            permission=grant.permission,
            resource_type=grant.resource_type,
            resource_id=grant.resource_id,
            active=grant.active,
            granted_at=grant.granted_at,
            granted_by=grant.granted_by,
            reason=grant.reason,
            expires_at=grant.expires_at,
            revoked_at=grant.revoked_at,
            revoked_by=grant.revoked_by,
            revocation_reason=grant.revocation_reason,
        )
