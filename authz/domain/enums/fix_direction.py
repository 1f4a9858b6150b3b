"""Direction for healing role divergence between the two stores."""

from enum import Enum


class FixDirection(str, Enum):
    """Which store's role value overwrites the other's.

    There is no authoritative store encoded in the data; the caller picks.
    """

    TO_IDENTITY_PROVIDER = "to_identity_provider"
    """Copy the database role into the identity provider profile."""

    TO_DATABASE = "to_database"
    """Copy the identity provider role into the database record."""

    @classmethod
    def parse(cls, value: "str | FixDirection") -> "FixDirection":
        """Parse a direction, accepting the legacy camelCase aliases.

        Args:
            value: Direction value ('to_identity_provider', 'to_database',
                'toClerk' or 'toDb').

        Returns:
            FixDirection: Parsed direction.

        Raises:
            ValueError: If value is not a known direction.
        """
        if isinstance(value, FixDirection):
            return value
        aliases = {"toClerk": cls.TO_IDENTITY_PROVIDER, "toDb": cls.TO_DATABASE}
        if value in aliases:
            return aliases[value]
        return cls(value)
