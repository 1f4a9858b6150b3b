"""PermissionBundleRepository - SQLAlchemy implementation."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from authz.domain.entities import PermissionBundle
from authz.infrastructure.persistence.base import as_utc
from authz.infrastructure.persistence.models.permission_bundle import (
    PermissionBundle as PermissionBundleModel,
)


class PermissionBundleRepository:
    """SQLAlchemy implementation of PermissionBundleRepository protocol.

    Attributes:
        session: SQLAlchemy async session for database operations.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def find_by_id(self, bundle_id: UUID) -> PermissionBundle | None:
        model = await self.session.get(PermissionBundleModel, bundle_id)
        return self._to_domain(model) if model is not None else None

    async def find_by_name(self, name: str) -> PermissionBundle | None:
        stmt = select(PermissionBundleModel).where(PermissionBundleModel.name == name)
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model is not None else None

    async def list_all(self) -> list[PermissionBundle]:
        stmt = select(PermissionBundleModel).order_by(PermissionBundleModel.name)
        result = await self.session.execute(stmt)
        return [self._to_domain(model) for model in result.scalars().all()]

    async def save(self, bundle: PermissionBundle) -> PermissionBundle:
        """Insert a bundle.

        Raises:
            IntegrityError: If the name already exists.
        """
        model = PermissionBundleModel(
            id=bundle.id,
            name=bundle.name,
            description=bundle.description,
            permissions=list(bundle.permissions),
        )
        self.session.add(model)
        try:
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        await self.session.refresh(model)
        return self._to_domain(model)

    async def update(self, bundle: PermissionBundle) -> PermissionBundle:
        """Persist changes to an existing bundle.

        Raises:
            NoResultFound: If the bundle doesn't exist.
            IntegrityError: If the new name collides with another bundle.
        """
        stmt = select(PermissionBundleModel).where(PermissionBundleModel.id == bundle.id)
        result = await self.session.execute(stmt)
        model = result.scalar_one()

        model.name = bundle.name
        model.description = bundle.description
        model.permissions = list(bundle.permissions)

        try:
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        await self.session.refresh(model)
        return self._to_domain(model)

    async def delete(self, bundle_id: UUID) -> bool:
        model = await self.session.get(PermissionBundleModel, bundle_id)
        if model is None:
            return False
        await self.session.delete(model)
        await self.session.commit()
        return True

    def _to_domain(self, model: PermissionBundleModel) -> PermissionBundle:
        return PermissionBundle(
            id=model.id,
            name=model.name,
            description=model.description,
            permissions=list(model.permissions or []),
            created_at=as_utc(model.created_at),
            updated_at=as_utc(model.updated_at),
        )
