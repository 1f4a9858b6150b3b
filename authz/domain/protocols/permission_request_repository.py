"""PermissionRequestRepository protocol for self-service access requests.

Implementations raise SQLAlchemy exceptions on store failure.
"""

from typing import Protocol
from uuid import UUID

from authz.domain.entities import PermissionRequest
from authz.domain.enums import PermissionRequestStatus


class PermissionRequestRepository(Protocol):
    """Permission request persistence."""

    async def add(self, request: PermissionRequest) -> PermissionRequest:
        """Insert a request."""
        ...

    async def find_by_id(self, request_id: UUID) -> PermissionRequest | None:
        """Find a request by id."""
        ...

    async def update(self, request: PermissionRequest) -> PermissionRequest:
        """Persist the review fields of an existing request."""
        ...

    async def list_requests(
        self,
        *,
        status: PermissionRequestStatus | None = None,
        principal_id: str | None = None,
        limit: int,
        offset: int = 0,
    ) -> list[PermissionRequest]:
        """Requests matching the filters, newest first."""
        ...

    async def count_requests(
        self,
        *,
        status: PermissionRequestStatus | None = None,
        principal_id: str | None = None,
    ) -> int:
        """Number of requests matching the filters."""
        ...

    async def has_pending(
        self,
        principal_id: str,
        *,
        permission: str | None = None,
        bundle_id: UUID | None = None,
        resource_type: str | None = None,
        resource_id: str | None = None,
    ) -> bool:
        """Check for a pending request asking for the same thing."""
        ...
