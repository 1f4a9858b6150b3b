"""Result types for railway-oriented programming.

Operations that can fail return a Result instead of raising, which keeps
failure handling explicit at every call site.

Usage:
    def parse_role(value: str) -> Result[UserRole, ValidationError]:
        if not UserRole.is_valid(value):
            return Failure(error=ValidationError(...))
        return Success(value=UserRole(value))

    match parse_role("agent"):
        case Success(value=role):
            print(role)
        case Failure(error=error):
            print(error.message)
"""

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")  # Success type
E = TypeVar("E")  # Error type


@dataclass(frozen=True, slots=True, kw_only=True)
class Success(Generic[T]):
    """Represents a successful operation result.

    Attributes:
        value: The successful result value.
    """

    value: T


@dataclass(frozen=True, slots=True, kw_only=True)
class Failure(Generic[E]):
    """Represents a failed operation result.

    Attributes:
        error: The error that occurred.
    """

    error: E


type Result[T, E] = Success[T] | Failure[E]
