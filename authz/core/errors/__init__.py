"""Core errors package.

Usage:
    from authz.core.errors import DomainError, ValidationError, NotFoundError
"""

from authz.core.errors.common_errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from authz.core.errors.domain_error import DomainError

__all__ = [
    "DomainError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "AuthorizationError",
]
