"""Tests for authz.infrastructure.identity.memory_adapter."""

import pytest

from authz.core.enums import ErrorCode
from authz.core.result import Failure, Success
from authz.domain.entities import PrincipalProfile
from authz.infrastructure.identity import InMemoryIdentityProvider


@pytest.mark.unit
class TestInMemoryIdentityProvider:
    """Test the dict-backed identity provider."""

    @pytest.mark.asyncio
    async def test_get_profile_returns_stored_user(self, identity_provider):
        """Should map the stored payload into a profile."""
        identity_provider.add_user(
            "user_1", email="a@example.com", public_metadata={"role": "agent"}
        )

        result = await identity_provider.get_profile("user_1")

        assert isinstance(result, Success)
        assert result.value.email == "a@example.com"
        assert result.value.role == "agent"

    @pytest.mark.asyncio
    async def test_get_unknown_user_is_not_found(self, identity_provider):
        """Should return PRINCIPAL_NOT_FOUND for unknown ids."""
        result = await identity_provider.get_profile("ghost")

        assert isinstance(result, Failure)
        assert result.error.code == ErrorCode.PRINCIPAL_NOT_FOUND

    @pytest.mark.asyncio
    async def test_returned_profiles_are_copies(self, identity_provider):
        """Should not let callers mutate stored state without update_profile."""
        identity_provider.add_user("user_1", public_metadata={"permissions": []})

        result = await identity_provider.get_profile("user_1")
        result.value.permissions.append("listings:approve")

        assert identity_provider.raw_metadata("user_1")["permissions"] == []

    @pytest.mark.asyncio
    async def test_update_profile_replaces_metadata_keeping_extras(self, identity_provider):
        """Should write the full blob including unmanaged keys."""
        identity_provider.add_user(
            "user_1", public_metadata={"role": "user", "onboarding": {"step": 2}}
        )
        profile = (await identity_provider.get_profile("user_1")).value
        profile.role = "moderator"

        result = await identity_provider.update_profile(profile)

        assert isinstance(result, Success)
        stored = identity_provider.raw_metadata("user_1")
        assert stored["role"] == "moderator"
        assert stored["onboarding"] == {"step": 2}

    @pytest.mark.asyncio
    async def test_update_unknown_user_is_not_found(self, identity_provider):
        """Should not create users on update."""
        result = await identity_provider.update_profile(PrincipalProfile(id="ghost"))

        assert isinstance(result, Failure)
        assert result.error.code == ErrorCode.PRINCIPAL_NOT_FOUND

    @pytest.mark.asyncio
    async def test_list_profiles_newest_first_with_paging(self, identity_provider):
        """Should list in reverse insertion order and honor limit/offset."""
        for i in range(5):
            identity_provider.add_user(f"user_{i}")

        first = await identity_provider.list_profiles(limit=2, offset=0)
        second = await identity_provider.list_profiles(limit=2, offset=2)
        tail = await identity_provider.list_profiles(limit=2, offset=4)

        assert [p.id for p in first.value] == ["user_4", "user_3"]
        assert [p.id for p in second.value] == ["user_2", "user_1"]
        assert [p.id for p in tail.value] == ["user_0"]
