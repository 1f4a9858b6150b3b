"""Resource-scoped permission grant entity."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass
class ResourcePermissionGrant:
    """A permission bound to one resource instance.

    Grants are never hard-deleted. Revocation flips `active` and stamps the
    revocation fields. An expired grant stays active until the reconciler
    deactivates it, so readers apply `is_effective` themselves.

    Attributes:
        id: Grant identifier.
        principal_id: Identity provider user id of the grantee.
        permission: Permission identifier.
        resource_type: Resource kind (e.g., "listing").
        resource_id: Resource instance identifier.
        active: False once revoked or reconciled.
        granted_at: Grant time.
        granted_by: Granting actor.
        reason: Grant reason.
        expires_at: Optional expiry.
        revoked_at: Revocation time.
        revoked_by: Revoking actor ("system" for automatic expiry).
        revocation_reason: Revocation reason.

    Example:
        >>> grant.is_effective(now)
        True
    """

    id: UUID
    principal_id: str
    permission: str
    resource_type: str
    resource_id: str
    active: bool
    granted_at: datetime
    granted_by: str | None = None
    reason: str | None = None
    expires_at: datetime | None = None
    revoked_at: datetime | None = None
    revoked_by: str | None = None
    revocation_reason: str | None = None

    def is_expired(self, now: datetime) -> bool:
        """Check whether the expiry has passed.

        Args:
            now: Evaluation time (UTC).

        Returns:
            bool: True if expires_at is set and not after now.
        """
        return self.expires_at is not None and self.expires_at <= now

    def is_effective(self, now: datetime) -> bool:
        """Check whether the grant currently authorizes access.

        Args:
            now: Evaluation time (UTC).

        Returns:
            bool: True if active and not expired.
        """
        return self.active and not self.is_expired(now)
