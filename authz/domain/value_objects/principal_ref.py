"""Typed principal reference.

Callers hand either a full profile they already loaded or a bare identifier.
The permission service resolves both into a canonical `PrincipalProfile` once,
at its boundary.

Usage:
    from authz.domain.value_objects import FullProfile, IdOnly

    await service.has_permission(IdOnly(principal_id="user_2abc"), "listings:create")
    await service.has_permission(FullProfile(profile=profile), "listings:create")
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from authz.domain.entities.principal_profile import PrincipalProfile


@dataclass(frozen=True, slots=True, kw_only=True)
class FullProfile:
    """Reference carrying an already-loaded profile."""

    profile: "PrincipalProfile"

    @property
    def cache_key(self) -> str | None:
        """Normalized cache key (id first, then email, else None)."""
        return self.profile.cache_key


@dataclass(frozen=True, slots=True, kw_only=True)
class IdOnly:
    """Reference carrying only the identity provider id."""

    principal_id: str

    @property
    def cache_key(self) -> str | None:
        """Normalized cache key for the id, or None if the id is blank."""
        if not self.principal_id:
            return None
        return f"user:{self.principal_id}"


type PrincipalRef = FullProfile | IdOnly
