"""Permission catalog and role defaults.

The catalog is a closed, immutable registry built once at import time.
Permission identifiers are `domain:action` strings. Role defaults are built by
literal composition (agent = user + extra, moderator = agent + extra); admin is
the union of every catalog permission, so a permission added to the catalog is
automatically granted to admin.

Usage:
    from authz.domain.permissions import catalog

    catalog.is_valid_permission("listings:approve")  # True
    catalog.default_permissions(UserRole.AGENT)       # frozenset({...})
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from authz.domain.enums import PermissionDomain, UserRole


def _domain(domain: PermissionDomain, *actions: str) -> Mapping[str, str]:
    return MappingProxyType(
        {action.upper(): f"{domain.value}:{action}" for action in actions}
    )


PERMISSIONS: Mapping[PermissionDomain, Mapping[str, str]] = MappingProxyType(
    {
        PermissionDomain.ADMIN: _domain(
            PermissionDomain.ADMIN,
            "access_dashboard",
            "view_analytics",
            "manage_system",
            "view_logs",
            "impersonate_user",
            "bulk_operations",
        ),
        PermissionDomain.USERS: _domain(
            PermissionDomain.USERS,
            "view_users",
            "create_user",
            "edit_user",
            "delete_user",
            "change_role",
            "view_user_details",
        ),
        PermissionDomain.LISTINGS: _domain(
            PermissionDomain.LISTINGS,
            "view_own",
            "view_all",
            "create",
            "edit_own",
            "edit_any",
            "delete_own",
            "delete_any",
            "publish",
            "feature",
            "approve",
            "flag",
            "view_draft",
        ),
        PermissionDomain.MESSAGES: _domain(
            PermissionDomain.MESSAGES,
            "send",
            "receive",
            "view_own",
            "view_all",
            "delete_own",
            "delete_any",
        ),
        PermissionDomain.REPORTS: _domain(
            PermissionDomain.REPORTS,
            "generate",
            "export",
            "view_basic",
            "view_advanced",
        ),
        PermissionDomain.SETTINGS: _domain(
            PermissionDomain.SETTINGS,
            "view_own",
            "view_system",
            "edit_own",
            "edit_system",
        ),
        PermissionDomain.FINANCE: _domain(
            PermissionDomain.FINANCE,
            "view_transactions",
            "process_payments",
            "issue_refunds",
            "view_financial_reports",
        ),
        PermissionDomain.INSPECTIONS: _domain(
            PermissionDomain.INSPECTIONS,
            "create",
            "view_own",
            "view_all",
            "edit_own",
            "edit_any",
            "delete_own",
            "delete_any",
            "schedule",
        ),
        PermissionDomain.ANALYTICS: _domain(
            PermissionDomain.ANALYTICS,
            "view_basic",
            "view_advanced",
            "export",
            "configure",
        ),
    }
)
"""Domain -> upper-case action name -> permission identifier."""

ALL_PERMISSIONS: frozenset[str] = frozenset(
    permission
    for actions in PERMISSIONS.values()
    for permission in actions.values()
)


_USER_DEFAULTS: frozenset[str] = frozenset(
    {
        "listings:view_own",
        "listings:create",
        "listings:edit_own",
        "listings:delete_own",
        "messages:send",
        "messages:receive",
        "messages:view_own",
        "messages:delete_own",
        "settings:view_own",
        "settings:edit_own",
        "inspections:view_own",
        "analytics:view_basic",
    }
)

_AGENT_DEFAULTS: frozenset[str] = _USER_DEFAULTS | {
    "listings:publish",
    "listings:view_draft",
    "inspections:create",
    "inspections:schedule",
    "inspections:edit_own",
    "reports:generate",
    "reports:view_basic",
}

_MODERATOR_DEFAULTS: frozenset[str] = _AGENT_DEFAULTS | {
    "listings:view_all",
    "listings:edit_any",
    "listings:flag",
    "listings:approve",
    "messages:view_all",
    "inspections:view_all",
    "reports:export",
    "reports:view_advanced",
}

ROLE_DEFAULTS: Mapping[UserRole, frozenset[str]] = MappingProxyType(
    {
        UserRole.USER: _USER_DEFAULTS,
        UserRole.AGENT: _AGENT_DEFAULTS,
        UserRole.MODERATOR: _MODERATOR_DEFAULTS,
        UserRole.ADMIN: ALL_PERMISSIONS,
    }
)


@dataclass(frozen=True, slots=True, kw_only=True)
class BundleDefinition:
    """Seed definition for a permission bundle.

    Attributes:
        name: Unique bundle name.
        description: Human-readable description.
        permissions: Permission identifiers in the bundle.
    """

    name: str
    description: str
    permissions: tuple[str, ...]


DEFAULT_BUNDLES: tuple[BundleDefinition, ...] = (
    BundleDefinition(
        name="Basic User",
        description="Basic permissions for regular users",
        permissions=("listings:view_own", "messages:send", "messages:receive"),
    ),
    BundleDefinition(
        name="Listing Manager",
        description="Permissions for managing listings",
        permissions=(
            "listings:view_own",
            "listings:view_all",
            "listings:create",
            "listings:edit_own",
            "listings:delete_own",
        ),
    ),
    BundleDefinition(
        name="Full Agent",
        description="Complete set of permissions for real estate agents",
        permissions=(
            "listings:view_own",
            "listings:view_all",
            "listings:create",
            "listings:edit_own",
            "listings:delete_own",
            "listings:publish",
            "messages:send",
            "messages:receive",
            "messages:view_own",
            "inspections:create",
            "inspections:schedule",
        ),
    ),
    BundleDefinition(
        name="Content Moderator",
        description="Permissions for content moderation",
        permissions=(
            "listings:view_all",
            "listings:approve",
            "listings:flag",
            "messages:view_all",
        ),
    ),
)


def is_valid_permission(permission: str) -> bool:
    """Check if a permission identifier exists in the catalog.

    Args:
        permission: Permission identifier (e.g., "listings:approve").

    Returns:
        bool: True if the identifier is a catalog member.
    """
    return permission in ALL_PERMISSIONS


def invalid_permissions(permissions: list[str] | tuple[str, ...]) -> list[str]:
    """Return the identifiers that are not catalog members, in input order."""
    return [p for p in permissions if not is_valid_permission(p)]


def default_permissions(role: UserRole | str | None) -> frozenset[str]:
    """Get default permissions for a role.

    Args:
        role: Role enum or raw stored role value.

    Returns:
        frozenset[str]: Role defaults. Unknown roles get the USER defaults.

    Example:
        >>> "listings:approve" in default_permissions("moderator")
        True
        >>> default_permissions("superuser") == default_permissions(UserRole.USER)
        True
    """
    if not isinstance(role, UserRole):
        role = UserRole.parse(role)
    return ROLE_DEFAULTS[role]


def domain_permissions(domain: PermissionDomain | str) -> Mapping[str, str]:
    """Get the action map for a domain.

    Args:
        domain: Domain enum or its string value.

    Returns:
        Mapping of upper-case action name to identifier; empty for an
        unknown domain.
    """
    if not isinstance(domain, PermissionDomain):
        if not PermissionDomain.is_valid(domain):
            return MappingProxyType({})
        domain = PermissionDomain(domain)
    return PERMISSIONS[domain]
