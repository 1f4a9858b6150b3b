"""Mapping between identity provider user payloads and PrincipalProfile.

Wire format (public metadata, camelCase):

    {
        "role": "agent",
        "permissions": ["listings:approve"],
        "temporaryPermissions": {
            "listings:approve": {
                "grantedAt": "2025-01-01T00:00:00Z",
                "expiresAt": "2025-01-02T00:00:00Z",
                "grantedBy": "user_admin",
            },
        },
        "permissionMetadata": {
            "listings:approve": {"source": "bundle", "bundleId": "...", ...},
        },
        ...any other keys, carried through untouched
    }

Malformed managed entries are dropped from the typed profile and described in
`profile.metadata_errors`, so one bad record never breaks a whole page.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from authz.core.constants import (
    MANAGED_METADATA_KEYS,
    METADATA_PERMISSION_METADATA,
    METADATA_PERMISSIONS,
    METADATA_ROLE,
    METADATA_TEMPORARY_PERMISSIONS,
)
from authz.domain.entities import PrincipalProfile
from authz.domain.enums import PermissionSource
from authz.domain.value_objects import PermissionProvenance, TemporaryPermission


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp, treating naive values as UTC.

    Raises:
        ValueError: If value is not an ISO-8601 string.
    """
    if not isinstance(value, str):
        raise ValueError(f"expected ISO-8601 string, got {type(value).__name__}")
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def format_timestamp(value: datetime) -> str:
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


def profile_from_user(user: dict[str, Any]) -> PrincipalProfile:
    """Build a profile from an identity provider user payload.

    Args:
        user: User object with id, email_addresses, names and public_metadata.

    Returns:
        PrincipalProfile: Typed profile (malformed entries listed in
        metadata_errors).
    """
    metadata = user.get("public_metadata") or {}
    errors: list[str] = []

    role = metadata.get(METADATA_ROLE)
    if role is not None and not isinstance(role, str):
        errors.append(f"role: expected string, got {type(role).__name__}")
        role = None

    permissions = metadata.get(METADATA_PERMISSIONS) or []
    if not isinstance(permissions, list):
        errors.append("permissions: expected list")
        permissions = []
    permissions = [p for p in permissions if isinstance(p, str)]

    return PrincipalProfile(
        id=user.get("id"),
        email=_primary_email(user),
        role=role,
        permissions=permissions,
        temporary_permissions=_parse_temporary(
            metadata.get(METADATA_TEMPORARY_PERMISSIONS) or {}, errors
        ),
        permission_metadata=_parse_provenance(
            metadata.get(METADATA_PERMISSION_METADATA) or {}, errors
        ),
        first_name=user.get("first_name"),
        last_name=user.get("last_name"),
        extra_metadata={k: v for k, v in metadata.items() if k not in MANAGED_METADATA_KEYS},
        metadata_errors=errors,
    )


def metadata_from_profile(profile: PrincipalProfile) -> dict[str, Any]:
    """Serialize the complete public metadata blob for a profile.

    Unmanaged keys from `extra_metadata` are written first so the managed keys
    always reflect the typed fields.
    """
    metadata: dict[str, Any] = dict(profile.extra_metadata)
    if profile.role is not None:
        metadata[METADATA_ROLE] = profile.role
    metadata[METADATA_PERMISSIONS] = list(profile.permissions)
    metadata[METADATA_TEMPORARY_PERMISSIONS] = {
        permission: {
            "grantedAt": format_timestamp(grant.granted_at),
            "expiresAt": format_timestamp(grant.expires_at),
            "grantedBy": grant.granted_by,
        }
        for permission, grant in profile.temporary_permissions.items()
    }
    metadata[METADATA_PERMISSION_METADATA] = {
        permission: _provenance_to_wire(provenance)
        for permission, provenance in profile.permission_metadata.items()
    }
    return metadata


def _primary_email(user: dict[str, Any]) -> str | None:
    addresses = user.get("email_addresses") or []
    primary_id = user.get("primary_email_address_id")
    for address in addresses:
        if address.get("id") == primary_id:
            return address.get("email_address")
    if addresses:
        return addresses[0].get("email_address")
    return user.get("email")


def _parse_temporary(raw: Any, errors: list[str]) -> dict[str, TemporaryPermission]:
    if not isinstance(raw, dict):
        errors.append("temporaryPermissions: expected object")
        return {}

    parsed: dict[str, TemporaryPermission] = {}
    for permission, entry in raw.items():
        try:
            parsed[permission] = TemporaryPermission(
                granted_at=parse_timestamp(entry.get("grantedAt") or entry["expiresAt"]),
                expires_at=parse_timestamp(entry["expiresAt"]),
                granted_by=entry.get("grantedBy"),
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            errors.append(f"temporaryPermissions.{permission}: {e!r}")
    return parsed


def _parse_provenance(raw: Any, errors: list[str]) -> dict[str, PermissionProvenance]:
    if not isinstance(raw, dict):
        errors.append("permissionMetadata: expected object")
        return {}

    parsed: dict[str, PermissionProvenance] = {}
    for permission, entry in raw.items():
        try:
            expires_at = entry.get("expiresAt")
            bundle_id = entry.get("bundleId")
            parsed[permission] = PermissionProvenance(
                source=PermissionSource(entry["source"]),
                granted_at=parse_timestamp(entry.get("grantedAt") or entry["appliedAt"]),
                granted_by=entry.get("grantedBy"),
                reason=entry.get("reason"),
                bundle_id=UUID(bundle_id) if bundle_id else None,
                bundle_name=entry.get("bundleName"),
                expires_at=parse_timestamp(expires_at) if expires_at else None,
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            errors.append(f"permissionMetadata.{permission}: {e!r}")
    return parsed


def _provenance_to_wire(provenance: PermissionProvenance) -> dict[str, Any]:
    wire: dict[str, Any] = {
        "source": provenance.source.value,
        "grantedAt": format_timestamp(provenance.granted_at),
        "grantedBy": provenance.granted_by,
        "reason": provenance.reason,
        "temporary": provenance.is_temporary,
    }
    if provenance.bundle_id is not None:
        wire["bundleId"] = str(provenance.bundle_id)
        wire["bundleName"] = provenance.bundle_name
    if provenance.expires_at is not None:
        wire["expiresAt"] = format_timestamp(provenance.expires_at)
    return wire
