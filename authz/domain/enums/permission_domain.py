"""Permission domains (functional groupings of permissions).

A permission identifier has the form `domain:action`, where domain is one of
these values. The catalog is closed: adding a domain means adding a member here
and its actions in `authz.domain.permissions.catalog`.

Usage:
    from authz.domain.enums import PermissionDomain

    perms = await service.get_domain_permissions(ref, PermissionDomain.LISTINGS)
"""

from enum import Enum


class PermissionDomain(str, Enum):
    """Functional permission domains.

    String Enum:
        Values are the lowercase prefix used in permission identifiers.
    """

    ADMIN = "admin"
    USERS = "users"
    LISTINGS = "listings"
    MESSAGES = "messages"
    REPORTS = "reports"
    SETTINGS = "settings"
    FINANCE = "finance"
    INSPECTIONS = "inspections"
    ANALYTICS = "analytics"

    @classmethod
    def values(cls) -> list[str]:
        """Get all domain values as strings.

        Returns:
            list[str]: List of domain values.
        """
        return [domain.value for domain in cls]

    @classmethod
    def is_valid(cls, value: str) -> bool:
        """Check if a string is a valid domain.

        Args:
            value: String to check.

        Returns:
            bool: True if value is a valid domain.
        """
        return value in cls.values()
