"""Permission store error types.

Used when a backing store (application database or identity provider) cannot
be reached or answers unusably.

Usage:
    from authz.domain.errors import PermissionStoreError
    from authz.core.enums import ErrorCode
    from authz.core.result import Failure

    return Failure(error=PermissionStoreError(
        code=ErrorCode.PERMISSION_STORE_UNAVAILABLE,
        message="Database unavailable",
        store="database",
        is_transient=True,
    ))
"""

from dataclasses import dataclass

from authz.core.errors import DomainError


@dataclass(frozen=True, slots=True, kw_only=True)
class PermissionStoreError(DomainError):
    """Backing store failure.

    Attributes:
        store: Which store failed ("database", "identity_provider").
        is_transient: True if the caller may retry.
    """

    store: str = "database"
    is_transient: bool = True


@dataclass(frozen=True, slots=True, kw_only=True)
class IdentityProviderError(PermissionStoreError):
    """Identity provider failure (unavailable, not found, invalid response).

    Attributes:
        status_code: HTTP status when the provider answered.
    """

    store: str = "identity_provider"
    status_code: int | None = None
