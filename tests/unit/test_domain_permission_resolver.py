"""Tests for authz.domain.permissions.resolver.

The resolver is pure: profile + time in, permission set out.
"""

from datetime import UTC, datetime, timedelta

import pytest

from authz.domain.entities import PrincipalProfile
from authz.domain.enums import PermissionDomain, UserRole
from authz.domain.permissions import catalog, resolver
from authz.domain.value_objects import TemporaryPermission

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=UTC)


def temporary(expires_at: datetime) -> TemporaryPermission:
    return TemporaryPermission(
        granted_at=NOW - timedelta(days=1), expires_at=expires_at, granted_by="user_admin"
    )


@pytest.mark.unit
class TestResolvePermissions:
    """Test effective set computation."""

    def test_role_defaults_only(self):
        """Should return exactly the role defaults with no explicit grants."""
        profile = PrincipalProfile(id="u1", role="agent")

        assert resolver.resolve_permissions(profile, NOW) == catalog.default_permissions(
            UserRole.AGENT
        )

    def test_explicit_permissions_are_added(self):
        """Should union explicit permissions with defaults."""
        profile = PrincipalProfile(id="u1", role="user", permissions=["finance:issue_refunds"])

        effective = resolver.resolve_permissions(profile, NOW)

        assert "finance:issue_refunds" in effective
        assert catalog.default_permissions(UserRole.USER) <= effective

    def test_active_temporary_permission_applies(self):
        """Should include a temporary grant that has not expired."""
        profile = PrincipalProfile(
            id="u1",
            role="user",
            temporary_permissions={"listings:approve": temporary(NOW + timedelta(hours=1))},
        )

        assert "listings:approve" in resolver.resolve_permissions(profile, NOW)

    def test_expired_temporary_permission_does_not_apply(self):
        """Should drop a temporary grant at or after its expiry."""
        profile = PrincipalProfile(
            id="u1",
            role="user",
            temporary_permissions={"listings:approve": temporary(NOW)},
        )

        assert "listings:approve" not in resolver.resolve_permissions(profile, NOW)

    def test_expired_temporary_also_masks_explicit_entry(self):
        """Should not let a stale explicit entry outlive its temporary grant."""
        profile = PrincipalProfile(
            id="u1",
            role="user",
            permissions=["listings:approve"],
            temporary_permissions={"listings:approve": temporary(NOW - timedelta(seconds=1))},
        )

        assert "listings:approve" not in resolver.resolve_permissions(profile, NOW)

    def test_role_default_survives_expired_temporary(self):
        """Should keep a role default even if a temporary record for it expired."""
        profile = PrincipalProfile(
            id="u1",
            role="user",
            temporary_permissions={"listings:create": temporary(NOW - timedelta(days=1))},
        )

        assert "listings:create" in resolver.resolve_permissions(profile, NOW)

    def test_unknown_role_resolves_as_user(self):
        """Should give USER defaults to an unknown role."""
        profile = PrincipalProfile(id="u1", role="overlord")

        assert resolver.resolve_permissions(profile, NOW) == catalog.default_permissions(
            UserRole.USER
        )

    def test_resolution_does_not_mutate_profile(self):
        """Should leave expired entries in place for the reconciler."""
        grant = temporary(NOW - timedelta(hours=1))
        profile = PrincipalProfile(
            id="u1",
            role="user",
            permissions=["listings:approve"],
            temporary_permissions={"listings:approve": grant},
        )

        resolver.resolve_permissions(profile, NOW)

        assert profile.permissions == ["listings:approve"]
        assert profile.temporary_permissions == {"listings:approve": grant}


@pytest.mark.unit
class TestNextExpiry:
    """Test when a resolved set next changes on its own."""

    def test_none_without_temporary_grants(self):
        """Should return None when nothing can lapse."""
        profile = PrincipalProfile(id="u1", role="user", permissions=["listings:approve"])

        assert resolver.next_expiry(profile, NOW) is None

    def test_earliest_active_expiry(self):
        """Should return the soonest expiry among active grants."""
        profile = PrincipalProfile(
            id="u1",
            role="user",
            temporary_permissions={
                "listings:approve": temporary(NOW + timedelta(hours=2)),
                "listings:flag": temporary(NOW + timedelta(seconds=30)),
            },
        )

        assert resolver.next_expiry(profile, NOW) == NOW + timedelta(seconds=30)

    def test_expired_grants_are_ignored(self):
        """Should skip grants that have already lapsed."""
        profile = PrincipalProfile(
            id="u1",
            role="user",
            temporary_permissions={
                "listings:approve": temporary(NOW - timedelta(minutes=1)),
                "listings:flag": temporary(NOW),
            },
        )

        assert resolver.next_expiry(profile, NOW) is None


@pytest.mark.unit
class TestChecks:
    """Test single, all and any checks."""

    def test_check_permission(self):
        """Should answer membership in the effective set."""
        profile = PrincipalProfile(id="u1", role="moderator")

        assert resolver.check_permission(profile, "listings:approve", NOW) is True
        assert resolver.check_permission(profile, "finance:issue_refunds", NOW) is False

    def test_check_all_permissions(self):
        """Should require every permission."""
        profile = PrincipalProfile(id="u1", role="agent")

        assert resolver.check_all_permissions(
            profile, ["listings:publish", "reports:generate"], NOW
        )
        assert not resolver.check_all_permissions(
            profile, ["listings:publish", "listings:approve"], NOW
        )

    def test_check_any_permission(self):
        """Should require at least one permission."""
        profile = PrincipalProfile(id="u1", role="agent")

        assert resolver.check_any_permission(profile, ["listings:approve", "listings:publish"], NOW)
        assert not resolver.check_any_permission(profile, ["listings:approve"], NOW)

    def test_empty_inputs_deny(self):
        """Should treat an empty requirement as a denial."""
        profile = PrincipalProfile(id="u1", role="admin")

        assert resolver.check_all_permissions(profile, [], NOW) is False
        assert resolver.check_any_permission(profile, [], NOW) is False


@pytest.mark.unit
class TestDomainPermissionMap:
    """Test domain permission maps."""

    def test_map_has_upper_and_lower_keys(self):
        """Should expose every action under both spellings."""
        effective = catalog.default_permissions(UserRole.USER)

        mapping = resolver.domain_permission_map(effective, PermissionDomain.LISTINGS)

        assert mapping["VIEW_OWN"] is True
        assert mapping["view_own"] is True
        assert mapping["APPROVE"] is False
        assert mapping["approve"] is False
        assert len(mapping) == 2 * len(catalog.PERMISSIONS[PermissionDomain.LISTINGS])

    def test_unknown_domain_is_empty(self):
        """Should return an empty map for an unknown domain."""
        assert resolver.domain_permission_map(catalog.ALL_PERMISSIONS, "weather") == {}
