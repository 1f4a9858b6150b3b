"""Result DTOs for permission, resource, bundle and request operations."""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from authz.domain.entities import PermissionRequest


@dataclass(frozen=True, slots=True, kw_only=True)
class RevokeResult:
    """Outcome of a revoke call.

    A zero count means nothing matched; that is not an error.

    Attributes:
        revoked_count: Grants deactivated by this call.
    """

    revoked_count: int


@dataclass(frozen=True, slots=True, kw_only=True)
class RoleChangeResult:
    """Outcome of a role change written through both stores.

    Attributes:
        principal_id: Identity provider user id.
        previous_role: Database role before the change.
        role: New role.
        mirror_synced: False if the identity provider write failed; the role
            consistency verifier heals it.
    """

    principal_id: str
    previous_role: str
    role: str
    mirror_synced: bool


@dataclass(frozen=True, slots=True, kw_only=True)
class BundleApplication:
    """Outcome of applying a bundle to a principal.

    Attributes:
        principal_id: Identity provider user id.
        bundle_id: Applied bundle.
        bundle_name: Applied bundle name.
        added: Permissions newly added by this call (provenance stamped).
        already_held: Bundle permissions the principal already held
            explicitly (provenance untouched).
        temporary: Whether the added permissions expire.
        expires_at: Expiry of the added permissions when temporary.
    """

    principal_id: str
    bundle_id: UUID
    bundle_name: str
    added: list[str] = field(default_factory=list)
    already_held: list[str] = field(default_factory=list)
    temporary: bool = False
    expires_at: datetime | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class PermissionRequestPage:
    """One page of permission requests, newest first.

    Attributes:
        items: Requests on this page.
        total: Requests matching the filters across all pages.
        limit: Page size.
        offset: Requests skipped before this page.
    """

    items: list[PermissionRequest]
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.items) < self.total
