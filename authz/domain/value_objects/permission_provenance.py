"""Provenance record for an explicit permission."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from authz.domain.enums import PermissionSource


@dataclass(frozen=True, slots=True, kw_only=True)
class PermissionProvenance:
    """Where and when an explicit permission was added.

    Attributes:
        source: Grant source (direct, temporary, bundle).
        granted_at: When the permission was added (UTC).
        granted_by: Acting principal or system actor.
        reason: Free-form reason supplied by the caller.
        bundle_id: Bundle id when source is BUNDLE.
        bundle_name: Bundle name when source is BUNDLE.
        expires_at: Expiry when the grant was temporary.
    """

    source: PermissionSource
    granted_at: datetime
    granted_by: str | None = None
    reason: str | None = None
    bundle_id: UUID | None = None
    bundle_name: str | None = None
    expires_at: datetime | None = None

    @property
    def is_temporary(self) -> bool:
        """True when the permission was added with an expiry."""
        return self.expires_at is not None
