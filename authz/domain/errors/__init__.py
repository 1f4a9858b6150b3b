"""Domain error types."""

from authz.domain.errors.audit_error import AuditError
from authz.domain.errors.permission_store_error import (
    IdentityProviderError,
    PermissionStoreError,
)

__all__ = [
    "AuditError",
    "IdentityProviderError",
    "PermissionStoreError",
]
