"""Base domain error class for Railway-Oriented Programming.

DomainError is the base class for ALL errors in the package. Errors flow
through the system as data (inside Failure), not as raised exceptions.

Architecture:
- Base class for core, domain and infrastructure errors
- Does NOT inherit from Exception (returned in Result, never raised)
- Uses dataclass inheritance (NOT Protocol/ABC)

Usage:
    from authz.core.errors import DomainError

    @dataclass(frozen=True, slots=True, kw_only=True)
    class MyError(DomainError):
        pass  # Inherits code, message, details
"""

from dataclasses import dataclass
from typing import Any

from authz.core.enums import ErrorCode


@dataclass(frozen=True, slots=True, kw_only=True)
class DomainError:
    """Base domain error (does NOT inherit from Exception).

    Attributes:
        code: Machine-readable error code (enum).
        message: Human-readable error message.
        details: Optional context for debugging.
    """

    code: ErrorCode
    message: str
    details: dict[str, Any] | None = None

    def __str__(self) -> str:
        """String representation of error."""
        return f"{self.code.value}: {self.message}"
