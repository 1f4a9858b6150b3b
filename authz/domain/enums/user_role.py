"""User roles for role-based permission defaults.

Role Hierarchy:
    admin > moderator > agent > user

    - admin: Every permission in the catalog (computed, never hand-maintained)
    - moderator: agent + content moderation capabilities
    - agent: user + publishing, inspections and basic reports
    - user: Baseline self-service access

Usage:
    from authz.domain.enums import UserRole

    if profile.effective_role == UserRole.ADMIN:
        ...
"""

from enum import Enum


class UserRole(str, Enum):
    """User roles for permission defaults.

    Each role is a superset of the role below it. The superset relation is
    built by literal composition in `authz.domain.permissions.catalog`.

    String Enum:
        Inherits from str for easy serialization. Values are lowercase and
        match the role stored in identity provider metadata and the database.
    """

    USER = "user"
    """Lowest privilege role. Unknown or missing roles resolve here."""

    AGENT = "agent"
    """Listing agent. Publishes listings and runs inspections."""

    MODERATOR = "moderator"
    """Content moderator. Reviews, approves and flags content."""

    ADMIN = "admin"
    """Administrator with every catalog permission."""

    @classmethod
    def values(cls) -> list[str]:
        """Get all role values as strings.

        Returns:
            list[str]: List of role values ['user', 'agent', 'moderator', 'admin'].
        """
        return [role.value for role in cls]

    @classmethod
    def is_valid(cls, value: str) -> bool:
        """Check if a string is a valid role.

        Args:
            value: String to check.

        Returns:
            bool: True if value is a valid role.
        """
        return value in cls.values()

    @classmethod
    def parse(cls, value: str | None) -> "UserRole":
        """Parse a stored role, falling back to the lowest privilege role.

        Args:
            value: Raw role value (may be None or unrecognized).

        Returns:
            UserRole: Matching role, or USER when value is not recognized.
        """
        if value is not None and cls.is_valid(value):
            return cls(value)
        return cls.USER
