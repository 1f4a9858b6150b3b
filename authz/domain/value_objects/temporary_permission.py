"""Temporary permission value object."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True, kw_only=True)
class TemporaryPermission:
    """A permission granted until a point in time.

    Entries stay physically present in the profile after expiry until the
    expiration reconciler prunes them, so readers must check `is_active`.

    Attributes:
        granted_at: When the grant was made (UTC).
        expires_at: When the grant stops applying (UTC).
        granted_by: Identifier of the granting actor.
    """

    granted_at: datetime
    expires_at: datetime
    granted_by: str | None = None

    def is_active(self, now: datetime) -> bool:
        """Check whether the grant still applies.

        Args:
            now: Evaluation time (UTC).

        Returns:
            bool: True if expires_at is strictly after now.
        """
        return self.expires_at > now
