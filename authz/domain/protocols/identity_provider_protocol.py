"""Identity provider port.

The identity provider owns principal profiles: role, explicit permissions,
temporary-permission map and provenance live in its metadata. Writes replace
the whole metadata blob, so callers merge into a freshly read profile before
calling `update_profile` (unmanaged keys travel in `extra_metadata`).

Implementations:
    - ClerkIdentityProvider: Clerk backend REST API over httpx
    - InMemoryIdentityProvider: Development and tests
"""

from typing import Protocol

from authz.core.result import Result
from authz.domain.entities import PrincipalProfile
from authz.domain.errors import IdentityProviderError


class IdentityProviderProtocol(Protocol):
    """Protocol for identity provider profile stores.

    All methods return Result types; transport failures never raise.
    """

    async def get_profile(
        self, principal_id: str
    ) -> Result[PrincipalProfile, IdentityProviderError]:
        """Read one principal's profile.

        Args:
            principal_id: Identity provider user id.

        Returns:
            Result with profile, or IdentityProviderError (not found,
            unavailable, invalid response).
        """
        ...

    async def update_profile(
        self, profile: PrincipalProfile
    ) -> Result[PrincipalProfile, IdentityProviderError]:
        """Write the complete metadata blob for a profile.

        Args:
            profile: Profile whose metadata replaces the stored metadata.

        Returns:
            Result with the stored profile, or IdentityProviderError.
        """
        ...

    async def list_profiles(
        self, *, limit: int, offset: int
    ) -> Result[list[PrincipalProfile], IdentityProviderError]:
        """List profiles, newest first.

        Args:
            limit: Page size.
            offset: Number of profiles to skip.

        Returns:
            Result with up to `limit` profiles, or IdentityProviderError.
        """
        ...
