"""Common error classes used across all layers.

Error Types:
- ValidationError: Input validation failures (unknown permission, bad role)
- NotFoundError: Principal or bundle not found
- ConflictError: Duplicate bundle names, state conflicts
- AuthorizationError: Caller lacks a required permission

Usage:
    from authz.core.errors import ValidationError
    from authz.core.enums import ErrorCode
    from authz.core.result import Failure

    return Failure(error=ValidationError(
        code=ErrorCode.INVALID_PERMISSION,
        message="Unknown permission: listings:teleport",
        field="permissions",
    ))
"""

from dataclasses import dataclass

from authz.core.errors.domain_error import DomainError


@dataclass(frozen=True, slots=True, kw_only=True)
class ValidationError(DomainError):
    """Input validation failure.

    Attributes:
        field: Field name that failed validation.
    """

    field: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class NotFoundError(DomainError):
    """Resource not found.

    Attributes:
        resource_type: Type of resource (principal, bundle, ...).
        resource_id: ID of the resource that was not found.
    """

    resource_type: str
    resource_id: str


@dataclass(frozen=True, slots=True, kw_only=True)
class ConflictError(DomainError):
    """Resource conflict (duplicate, state conflict).

    Attributes:
        resource_type: Type of resource in conflict.
        conflicting_field: Field that has the conflict (name, ...).
    """

    resource_type: str
    conflicting_field: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class AuthorizationError(DomainError):
    """Authorization failure (no permission).

    Attributes:
        required_permission: Permission that was required.
    """

    required_permission: str | None = None
