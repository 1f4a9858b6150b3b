"""Domain-level error codes (machine-readable).

Error codes follow ENTITY_ACTION_REASON naming convention.
Used with Result types for railway-oriented programming.

Categories:
- Validation errors (INVALID_*, VALIDATION_*)
- Resource errors (*_NOT_FOUND)
- Conflict errors (*_ALREADY_EXISTS)
- Authorization errors (PERMISSION_*)
- Store errors (*_UNAVAILABLE, *_FAILED)
"""

from enum import Enum


class ErrorCode(Enum):
    """Domain-level error codes (machine-readable).

    Error codes follow ENTITY_ACTION_REASON naming convention.
    """

    # Validation errors
    VALIDATION_FAILED = "validation_failed"
    INVALID_INPUT = "invalid_input"
    INVALID_PERMISSION = "invalid_permission"
    INVALID_ROLE = "invalid_role"
    INVALID_PRINCIPAL = "invalid_principal"
    INVALID_EXPIRATION = "invalid_expiration"
    INVALID_FIX_DIRECTION = "invalid_fix_direction"

    # Resource errors
    PRINCIPAL_NOT_FOUND = "principal_not_found"
    BUNDLE_NOT_FOUND = "bundle_not_found"
    RESOURCE_NOT_FOUND = "resource_not_found"
    PERMISSION_REQUEST_NOT_FOUND = "permission_request_not_found"

    # Conflict errors
    BUNDLE_ALREADY_EXISTS = "bundle_already_exists"
    RESOURCE_CONFLICT = "resource_conflict"
    PERMISSION_ALREADY_HELD = "permission_already_held"
    PERMISSION_REQUEST_NOT_PENDING = "permission_request_not_pending"

    # Authorization errors
    PERMISSION_DENIED = "permission_denied"

    # Store errors
    PERMISSION_STORE_UNAVAILABLE = "permission_store_unavailable"
    IDENTITY_PROVIDER_UNAVAILABLE = "identity_provider_unavailable"
    IDENTITY_PROVIDER_INVALID_RESPONSE = "identity_provider_invalid_response"
    IDENTITY_PROVIDER_REJECTED = "identity_provider_rejected"

    # Audit trail errors
    AUDIT_RECORD_FAILED = "audit_record_failed"
    AUDIT_QUERY_FAILED = "audit_query_failed"
