"""Permission resolver.

Pure functions computing a principal's effective permission set:

    role defaults
    ∪ (explicit permissions - those whose temporary grant has expired)
    ∪ {temporary permissions with expires_at > now}

Time is an explicit input. Resolution never mutates the profile; expired
temporary entries are pruned only by the expiration reconciler.

Usage:
    from authz.domain.permissions import resolver

    now = clock.now()
    effective = resolver.resolve_permissions(profile, now)
    recheck_at = resolver.next_expiry(profile, now)
    allowed = resolver.check_permission(profile, "listings:approve", now)
"""

from collections.abc import Iterable
from datetime import datetime

from authz.domain.entities import PrincipalProfile
from authz.domain.enums import PermissionDomain
from authz.domain.permissions import catalog


def resolve_permissions(profile: PrincipalProfile, now: datetime) -> frozenset[str]:
    """Compute the effective permission set.

    Args:
        profile: Principal profile.
        now: Evaluation time (UTC).

    Returns:
        frozenset[str]: Effective permissions. Always contains every role default.

    Example:
        >>> profile = PrincipalProfile(id="u1", role="user")
        >>> "listings:create" in resolve_permissions(profile, now)
        True
    """
    expired = {
        permission
        for permission, grant in profile.temporary_permissions.items()
        if not grant.is_active(now)
    }
    active_temporary = profile.temporary_permissions.keys() - expired
    explicit = set(profile.permissions) - expired

    return catalog.default_permissions(profile.role) | explicit | active_temporary


def next_expiry(profile: PrincipalProfile, now: datetime) -> datetime | None:
    """When the effective set next changes without a write.

    Args:
        profile: Principal profile.
        now: Evaluation time (UTC).

    Returns:
        datetime | None: Earliest expiry among active temporary grants, or
        None when the profile holds none.
    """
    return min(
        (grant.expires_at for grant in profile.temporary_permissions.values() if grant.is_active(now)),
        default=None,
    )


def check_permission(profile: PrincipalProfile, permission: str, now: datetime) -> bool:
    """Check a single permission.

    Args:
        profile: Principal profile.
        permission: Permission identifier.
        now: Evaluation time (UTC).

    Returns:
        bool: True if the permission is in the effective set.
    """
    return permission in resolve_permissions(profile, now)


def check_all_permissions(
    profile: PrincipalProfile, permissions: Iterable[str], now: datetime
) -> bool:
    """Check that every permission is held.

    An empty input returns False: "no permissions required" is not an allow.
    """
    required = set(permissions)
    if not required:
        return False
    return required <= resolve_permissions(profile, now)


def check_any_permission(
    profile: PrincipalProfile, permissions: Iterable[str], now: datetime
) -> bool:
    """Check that at least one permission is held (empty input returns False)."""
    return not resolve_permissions(profile, now).isdisjoint(permissions)


def domain_permission_map(
    effective: frozenset[str], domain: PermissionDomain | str
) -> dict[str, bool]:
    """Map every action in a domain to whether it is held.

    Keys are both the upper-case action name and the lowercase action, so
    callers can look up `"VIEW_OWN"` or `"view_own"`.

    Args:
        effective: Effective permission set (from resolve_permissions).
        domain: Domain enum or its string value.

    Returns:
        dict[str, bool]: Action -> held. Empty for an unknown domain.
    """
    result: dict[str, bool] = {}
    for name, permission in catalog.domain_permissions(domain).items():
        held = permission in effective
        result[name] = held
        result[name.lower()] = held
    return result
