"""Principal profile entity (identity provider view of a user).

The identity provider owns the profile. Its metadata carries the role, the
explicit permission list, the temporary-permission map and provenance for each
explicit permission. Every other metadata key is kept in `extra_metadata` and
written back untouched so updates never clobber unrelated fields.
"""

from dataclasses import dataclass, field
from typing import Any

from authz.domain.enums import UserRole
from authz.domain.value_objects.permission_provenance import PermissionProvenance
from authz.domain.value_objects.temporary_permission import TemporaryPermission


@dataclass
class PrincipalProfile:
    """Identity provider profile for a principal.

    Attributes:
        id: Identity provider user id (None for anonymous lookups by email).
        email: Primary email address.
        role: Raw stored role value (may be missing or unrecognized).
        permissions: Explicit permission identifiers beyond role defaults.
        temporary_permissions: Permission -> time-bounded grant.
        permission_metadata: Permission -> provenance of the explicit grant.
        first_name: Given name.
        last_name: Family name.
        extra_metadata: Unmanaged metadata keys, preserved on write.
        metadata_errors: Problems found while reading stored metadata; the
            malformed entries are dropped from the typed fields.

    Example:
        >>> profile = PrincipalProfile(id="user_1", role="agent")
        >>> profile.effective_role
        <UserRole.AGENT: 'agent'>
        >>> profile.cache_key
        'user:user_1'
    """

    id: str | None = None
    email: str | None = None
    role: str | None = None
    permissions: list[str] = field(default_factory=list)
    temporary_permissions: dict[str, TemporaryPermission] = field(default_factory=dict)
    permission_metadata: dict[str, PermissionProvenance] = field(default_factory=dict)
    first_name: str | None = None
    last_name: str | None = None
    extra_metadata: dict[str, Any] = field(default_factory=dict)
    metadata_errors: list[str] = field(default_factory=list)

    @property
    def effective_role(self) -> UserRole:
        """Role used for defaults (USER when missing or unrecognized)."""
        return UserRole.parse(self.role)

    @property
    def cache_key(self) -> str | None:
        """Normalized cache key: `user:<id>`, else `email:<email>`, else None."""
        if self.id:
            return f"user:{self.id}"
        if self.email:
            return f"email:{self.email.lower()}"
        return None
