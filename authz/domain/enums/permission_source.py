"""Provenance sources for explicitly granted permissions."""

from enum import Enum


class PermissionSource(str, Enum):
    """Where an explicit permission came from.

    Stored per permission in profile metadata so later writers can tell a
    bundle-applied permission apart from a direct grant.
    """

    DIRECT = "direct"
    """Granted one by one by an administrator."""

    TEMPORARY = "temporary"
    """Granted with an expiry through the temporary-permission map."""

    BUNDLE = "bundle"
    """Added by applying a permission bundle."""
