"""Tests for authz.infrastructure.identity.metadata_mapper.

Wire format: camelCase public metadata on an identity provider user object.
"""

from datetime import UTC, datetime, timedelta, timezone
from uuid import uuid4

import pytest

from authz.domain.entities import PrincipalProfile
from authz.domain.enums import PermissionSource
from authz.domain.value_objects import PermissionProvenance, TemporaryPermission
from authz.infrastructure.identity.metadata_mapper import (
    format_timestamp,
    metadata_from_profile,
    parse_timestamp,
    profile_from_user,
)

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=UTC)


def user_payload(public_metadata: dict, **overrides) -> dict:
    payload = {
        "id": "user_1",
        "email_addresses": [
            {"id": "email_a", "email_address": "other@example.com"},
            {"id": "email_b", "email_address": "primary@example.com"},
        ],
        "primary_email_address_id": "email_b",
        "first_name": "Ada",
        "last_name": "Lovelace",
        "public_metadata": public_metadata,
    }
    payload.update(overrides)
    return payload


@pytest.mark.unit
class TestTimestamps:
    """Test ISO-8601 helpers."""

    def test_parse_zulu_timestamp(self):
        """Should parse a trailing Z as UTC."""
        assert parse_timestamp("2026-01-15T12:00:00Z") == NOW

    def test_parse_naive_timestamp_as_utc(self):
        """Should treat a naive timestamp as UTC."""
        assert parse_timestamp("2026-01-15T12:00:00") == NOW

    def test_parse_offset_timestamp_converts_to_utc(self):
        """Should convert offsets to UTC."""
        parsed = parse_timestamp("2026-01-15T14:00:00+02:00")
        assert parsed == NOW
        assert parsed.tzinfo == UTC

    @pytest.mark.parametrize("value", [None, 12345, "yesterday"])
    def test_parse_rejects_non_iso_values(self, value):
        """Should raise ValueError for anything but an ISO string."""
        with pytest.raises(ValueError):
            parse_timestamp(value)

    def test_format_uses_z_suffix(self):
        """Should render UTC with a Z suffix."""
        local = NOW.astimezone(timezone(timedelta(hours=-5)))
        assert format_timestamp(local) == "2026-01-15T12:00:00Z"


@pytest.mark.unit
class TestProfileFromUser:
    """Test reading a user payload."""

    def test_reads_managed_fields(self):
        """Should map role, lists, maps and identity fields."""
        bundle_id = uuid4()
        profile = profile_from_user(
            user_payload(
                {
                    "role": "agent",
                    "permissions": ["listings:approve", "finance:issue_refunds"],
                    "temporaryPermissions": {
                        "listings:approve": {
                            "grantedAt": "2026-01-15T10:00:00Z",
                            "expiresAt": "2026-01-16T10:00:00Z",
                            "grantedBy": "user_admin",
                        }
                    },
                    "permissionMetadata": {
                        "finance:issue_refunds": {
                            "source": "bundle",
                            "appliedAt": "2026-01-14T09:00:00Z",
                            "grantedBy": "user_admin",
                            "bundleId": str(bundle_id),
                            "bundleName": "Finance",
                        }
                    },
                }
            )
        )

        assert profile.id == "user_1"
        assert profile.email == "primary@example.com"
        assert profile.role == "agent"
        assert profile.permissions == ["listings:approve", "finance:issue_refunds"]
        grant = profile.temporary_permissions["listings:approve"]
        assert grant.expires_at == datetime(2026, 1, 16, 10, 0, tzinfo=UTC)
        assert grant.granted_by == "user_admin"
        provenance = profile.permission_metadata["finance:issue_refunds"]
        assert provenance.source == PermissionSource.BUNDLE
        assert provenance.bundle_id == bundle_id
        assert provenance.granted_at == datetime(2026, 1, 14, 9, 0, tzinfo=UTC)
        assert profile.metadata_errors == []

    def test_unmanaged_keys_go_to_extra_metadata(self):
        """Should keep every unmanaged key untouched."""
        profile = profile_from_user(
            user_payload({"role": "user", "onboarding": {"step": 3}, "theme": "dark"})
        )

        assert profile.extra_metadata == {"onboarding": {"step": 3}, "theme": "dark"}

    def test_empty_metadata(self):
        """Should produce an empty profile for a user without metadata."""
        profile = profile_from_user(user_payload({}, public_metadata=None))

        assert profile.role is None
        assert profile.permissions == []
        assert profile.temporary_permissions == {}
        assert profile.permission_metadata == {}

    def test_malformed_entries_are_reported_and_dropped(self):
        """Should drop malformed entries and list them in metadata_errors."""
        profile = profile_from_user(
            user_payload(
                {
                    "role": 7,
                    "temporaryPermissions": {
                        "listings:approve": {"expiresAt": "not-a-date"},
                        "listings:flag": {"expiresAt": "2026-02-01T00:00:00Z"},
                    },
                    "permissionMetadata": {"listings:flag": {"source": "teleport"}},
                }
            )
        )

        assert profile.role is None
        assert set(profile.temporary_permissions) == {"listings:flag"}
        assert profile.permission_metadata == {}
        assert len(profile.metadata_errors) == 3

    def test_falls_back_to_first_email(self):
        """Should use the first address when no primary id matches."""
        profile = profile_from_user(user_payload({}, primary_email_address_id=None))

        assert profile.email == "other@example.com"


@pytest.mark.unit
class TestMetadataFromProfile:
    """Test writing the metadata blob."""

    def test_round_trips_managed_and_unmanaged_keys(self):
        """Should write a blob that reads back to the same profile."""
        bundle_id = uuid4()
        profile = PrincipalProfile(
            id="user_1",
            role="moderator",
            permissions=["finance:issue_refunds"],
            temporary_permissions={
                "listings:feature": TemporaryPermission(
                    granted_at=NOW, expires_at=NOW + timedelta(days=1), granted_by="user_admin"
                )
            },
            permission_metadata={
                "finance:issue_refunds": PermissionProvenance(
                    source=PermissionSource.BUNDLE,
                    granted_at=NOW,
                    granted_by="user_admin",
                    bundle_id=bundle_id,
                    bundle_name="Finance",
                )
            },
            extra_metadata={"theme": "dark"},
        )

        metadata = metadata_from_profile(profile)
        restored = profile_from_user({"id": "user_1", "public_metadata": metadata})

        assert metadata["theme"] == "dark"
        assert metadata["temporaryPermissions"]["listings:feature"]["expiresAt"] == (
            "2026-01-16T12:00:00Z"
        )
        assert metadata["permissionMetadata"]["finance:issue_refunds"]["bundleId"] == str(
            bundle_id
        )
        assert restored.role == profile.role
        assert restored.permissions == profile.permissions
        assert restored.temporary_permissions == profile.temporary_permissions
        assert restored.permission_metadata == profile.permission_metadata
        assert restored.extra_metadata == {"theme": "dark"}

    def test_managed_keys_override_stale_extra_values(self):
        """Should let typed fields win over a managed key left in extra_metadata."""
        profile = PrincipalProfile(
            id="user_1", role="agent", extra_metadata={"role": "admin", "permissions": ["x"]}
        )

        metadata = metadata_from_profile(profile)

        assert metadata["role"] == "agent"
        assert metadata["permissions"] == []
