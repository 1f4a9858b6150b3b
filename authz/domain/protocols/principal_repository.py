"""PrincipalRepository protocol for the database role mirror.

Implementations raise SQLAlchemy exceptions on store failure; application
services convert them to PermissionStoreError at their boundary.
"""

from datetime import datetime
from typing import Protocol

from authz.domain.entities import PrincipalRecord


class PrincipalRepository(Protocol):
    """Principal record persistence."""

    async def find_by_external_id(self, external_id: str) -> PrincipalRecord | None:
        """Find a record by identity provider id.

        Args:
            external_id: Identity provider user id.

        Returns:
            PrincipalRecord if found, None otherwise.
        """
        ...

    async def list_active(self, *, limit: int, offset: int = 0) -> list[PrincipalRecord]:
        """List non-deleted records ordered by creation time.

        Args:
            limit: Page size.
            offset: Number of records to skip.

        Returns:
            list[PrincipalRecord]: Up to `limit` records.
        """
        ...

    async def count_active(self) -> int:
        """Count non-deleted records."""
        ...

    async def save(self, record: PrincipalRecord) -> None:
        """Insert a new record."""
        ...

    async def update_role(
        self, external_id: str, *, role: str, source: str, synced_at: datetime
    ) -> bool:
        """Overwrite the stored role and stamp the sync metadata.

        Args:
            external_id: Identity provider user id.
            role: New role value.
            source: What performed the write (e.g., "role_change", "verifier").
            synced_at: Write time.

        Returns:
            bool: True if a record was updated.
        """
        ...
