"""PermissionBundleRepository protocol."""

from typing import Protocol
from uuid import UUID

from authz.domain.entities import PermissionBundle


class PermissionBundleRepository(Protocol):
    """Permission bundle persistence.

    Implementations raise SQLAlchemy exceptions on store failure.
    """

    async def find_by_id(self, bundle_id: UUID) -> PermissionBundle | None:
        """Find a bundle by id."""
        ...

    async def find_by_name(self, name: str) -> PermissionBundle | None:
        """Find a bundle by its unique name."""
        ...

    async def list_all(self) -> list[PermissionBundle]:
        """List bundles ordered by name."""
        ...

    async def save(self, bundle: PermissionBundle) -> PermissionBundle:
        """Insert a bundle."""
        ...

    async def update(self, bundle: PermissionBundle) -> PermissionBundle:
        """Persist changes to an existing bundle."""
        ...

    async def delete(self, bundle_id: UUID) -> bool:
        """Delete a bundle.

        Returns:
            bool: True if a bundle was deleted.
        """
        ...
