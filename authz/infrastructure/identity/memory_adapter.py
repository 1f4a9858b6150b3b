"""In-memory identity provider for development and tests.

Stores raw user payloads in the same shape the Clerk API returns and maps them
through the same metadata mapper, so wire-format behavior (unmanaged keys kept,
malformed entries reported) matches the real adapter.
"""

import copy
from typing import Any

from authz.core.enums import ErrorCode
from authz.core.result import Failure, Result, Success
from authz.domain.entities import PrincipalProfile
from authz.domain.errors import IdentityProviderError
from authz.infrastructure.identity.metadata_mapper import (
    metadata_from_profile,
    profile_from_user,
)


class InMemoryIdentityProvider:
    """Dict-backed identity provider.

    Users are listed newest first (reverse insertion order).

    Example:
        >>> provider = InMemoryIdentityProvider()
        >>> provider.add_user("user_1", email="a@example.com", public_metadata={"role": "agent"})
        >>> result = await provider.get_profile("user_1")
    """

    def __init__(self) -> None:
        self._users: dict[str, dict[str, Any]] = {}

    def add_user(
        self,
        user_id: str,
        *,
        email: str | None = None,
        first_name: str | None = None,
        last_name: str | None = None,
        public_metadata: dict[str, Any] | None = None,
    ) -> None:
        """Insert or replace a raw user record."""
        self._users[user_id] = {
            "id": user_id,
            "email_addresses": [{"id": "email_1", "email_address": email}] if email else [],
            "primary_email_address_id": "email_1" if email else None,
            "first_name": first_name,
            "last_name": last_name,
            "public_metadata": copy.deepcopy(public_metadata or {}),
        }

    def raw_metadata(self, user_id: str) -> dict[str, Any]:
        """Stored public metadata for a user (copy)."""
        return copy.deepcopy(self._users[user_id]["public_metadata"])

    async def get_profile(
        self, principal_id: str
    ) -> Result[PrincipalProfile, IdentityProviderError]:
        user = self._users.get(principal_id)
        if user is None:
            return Failure(error=self._not_found(principal_id))
        return Success(value=profile_from_user(copy.deepcopy(user)))

    async def update_profile(
        self, profile: PrincipalProfile
    ) -> Result[PrincipalProfile, IdentityProviderError]:
        user = self._users.get(profile.id or "")
        if user is None:
            return Failure(error=self._not_found(profile.id or ""))
        user["public_metadata"] = copy.deepcopy(metadata_from_profile(profile))
        return Success(value=profile_from_user(copy.deepcopy(user)))

    async def list_profiles(
        self, *, limit: int, offset: int
    ) -> Result[list[PrincipalProfile], IdentityProviderError]:
        newest_first = list(reversed(self._users.values()))
        page = newest_first[offset : offset + limit]
        return Success(value=[profile_from_user(copy.deepcopy(u)) for u in page])

    @staticmethod
    def _not_found(principal_id: str) -> IdentityProviderError:
        return IdentityProviderError(
            code=ErrorCode.PRINCIPAL_NOT_FOUND,
            message=f"User not found: {principal_id}",
            is_transient=False,
            status_code=404,
        )
