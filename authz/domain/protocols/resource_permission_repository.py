"""ResourcePermissionRepository protocol for resource-scoped grants.

Implementations raise SQLAlchemy exceptions on store failure, including
IntegrityError when an insert collides with the one-active-grant-per-tuple
constraint.
"""

from datetime import datetime
from typing import Protocol
from uuid import UUID

from authz.domain.entities import ResourcePermissionGrant


class ResourcePermissionRepository(Protocol):
    """Resource-scoped grant persistence."""

    async def find_active(
        self,
        principal_id: str,
        permission: str,
        resource_type: str,
        resource_id: str,
    ) -> ResourcePermissionGrant | None:
        """Find the active grant for a tuple, expired or not."""
        ...

    async def add(self, grant: ResourcePermissionGrant) -> ResourcePermissionGrant:
        """Insert a grant.

        Raises:
            sqlalchemy.exc.IntegrityError: An active grant already exists.
        """
        ...

    async def update(self, grant: ResourcePermissionGrant) -> ResourcePermissionGrant:
        """Persist changed metadata of an existing grant."""
        ...

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
        ...

    async def has_effective_grant(
        self,
        principal_id: str,
        permission: str,
        resource_type: str,
        resource_id: str,
        now: datetime,
    ) -> bool:
        """Check for an active, unexpired grant."""
        ...

    async def list_effective_resource_ids(
        self, principal_id: str, permission: str, resource_type: str, now: datetime
    ) -> set[str]:
        """Resource ids the principal holds an active, unexpired grant on."""
        ...

    async def list_effective_principal_ids(
        self, permission: str, resource_type: str, resource_id: str, now: datetime
    ) -> list[str]:
        """Distinct principals with an active, unexpired grant on a resource."""
        ...

    async def list_expired_active(
        self, now: datetime, *, limit: int, after_id: UUID | None = None
    ) -> list[ResourcePermissionGrant]:
        """Active grants whose expiry has passed, ordered by id.

        Args:
            now: Evaluation time.
            limit: Page size.
            after_id: Keyset cursor (exclusive).
        """
        ...

    async def deactivate_expired(
        self, grant_id: UUID, *, now: datetime, revoked_by: str, reason: str
    ) -> bool:
        """Deactivate one grant if it is still active and expired.

        Returns:
            bool: True if the grant was deactivated by this call.
        """
        ...
