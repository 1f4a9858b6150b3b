"""PrincipalRepository - SQLAlchemy implementation.

Maps between PrincipalRecord entities and Principal rows.
"""

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from authz.domain.entities import PrincipalRecord
from authz.infrastructure.persistence.base import as_utc
from authz.infrastructure.persistence.models.principal import (
    Principal as PrincipalModel,
)


class PrincipalRepository:
    """SQLAlchemy implementation of PrincipalRepository protocol.

    Attributes:
        session: SQLAlchemy async session for database operations.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def find_by_external_id(self, external_id: str) -> PrincipalRecord | None:
        """Find a record by identity provider id.

        Args:
            external_id: Identity provider user id.

        Returns:
            PrincipalRecord if found, None otherwise.
        """
        stmt = select(PrincipalModel).where(PrincipalModel.external_id == external_id)
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()

        if model is None:
            return None

        return self._to_domain(model)

    async def list_active(self, *, limit: int, offset: int = 0) -> list[PrincipalRecord]:
        """List non-deleted records, oldest first."""
        stmt = (
            select(PrincipalModel)
            .where(PrincipalModel.is_deleted.is_(False))
            .order_by(PrincipalModel.created_at, PrincipalModel.id)
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [self._to_domain(model) for model in result.scalars().all()]

    async def count_active(self) -> int:
        stmt = select(func.count()).select_from(PrincipalModel).where(
            PrincipalModel.is_deleted.is_(False)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def save(self, record: PrincipalRecord) -> None:
        """Insert a new record.

        Raises:
            IntegrityError: If external_id already exists.
        """
        model = self._to_model(record)
        self.session.add(model)
        await self.session.commit()
        await self.session.refresh(model)

    async def update_role(
        self, external_id: str, *, role: str, source: str, synced_at: datetime
    ) -> bool:
        """Overwrite the stored role and stamp last_role_sync.

        Returns:
            bool: True if a record was updated, False if none matched.
        """
        stmt = select(PrincipalModel).where(PrincipalModel.external_id == external_id)
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        if model is None:
            return False

        model.role = role
        model.last_role_sync = {"source": source, "timestamp": synced_at.isoformat()}

        await self.session.commit()
        await self.session.refresh(model)
        return True

    def _to_domain(self, model: PrincipalModel) -> PrincipalRecord:
        return PrincipalRecord(
            id=model.id,
            external_id=model.external_id,
            email=model.email,
            role=model.role,
            first_name=model.first_name,
            last_name=model.last_name,
            is_deleted=model.is_deleted,
            last_role_sync=model.last_role_sync,
            created_at=as_utc(model.created_at),
            updated_at=as_utc(model.updated_at),
        )

    def _to_model(self, record: PrincipalRecord) -> PrincipalModel:
        return PrincipalModel(
            id=record.id,
            external_id=record.external_id,
            email=record.email,
            role=record.role,
            first_name=record.first_name,
            last_name=record.last_name,
            is_deleted=record.is_deleted,
            last_role_sync=record.last_role_sync,
        )
