"""Clock port.

Expiry logic takes time from an injected clock so tests can pin it.
"""

from datetime import datetime
from typing import Protocol


class ClockProtocol(Protocol):
    """Source of the current time."""

    def now(self) -> datetime:
        """Return the current time as a timezone-aware UTC datetime."""
        ...
