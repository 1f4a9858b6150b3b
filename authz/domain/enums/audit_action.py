"""Audit action types for permission changes.

Every mutation of a principal's permission facts appends one audit record.
Action-specific context is stored in the JSON context column.

Usage:
    from authz.domain.enums import AuditAction

    await audit.record(
        action=AuditAction.BUNDLE_APPLIED,
        principal_id=principal_id,
        actor=applied_by,
        context={"bundle_id": str(bundle.id), "added": added},
    )
"""

from enum import Enum


class AuditAction(str, Enum):
    """Auditable permission events.

    String Enum:
        Values are snake_case strings stored as-is in the audit table.
    """

    # =========================================================================
    # Principal-wide grants
    # =========================================================================

    PERMISSIONS_GRANTED = "permissions_granted"
    PERMISSIONS_REVOKED = "permissions_revoked"
    TEMPORARY_PERMISSION_GRANTED = "temporary_permission_granted"
    TEMPORARY_PERMISSIONS_EXPIRED = "temporary_permissions_expired"
    PERMISSIONS_RESET = "permissions_reset"

    # =========================================================================
    # Resource-scoped grants
    # =========================================================================

    RESOURCE_PERMISSION_GRANTED = "resource_permission_granted"
    RESOURCE_PERMISSION_UPDATED = "resource_permission_updated"
    RESOURCE_PERMISSION_REVOKED = "resource_permission_revoked"
    RESOURCE_PERMISSION_EXPIRED = "resource_permission_expired"

    # =========================================================================
    # Bundles
    # =========================================================================

    BUNDLE_APPLIED = "bundle_applied"

    # =========================================================================
    # Permission requests
    # =========================================================================

    PERMISSION_REQUESTED = "permission_requested"
    PERMISSION_REQUEST_APPROVED = "permission_request_approved"
    PERMISSION_REQUEST_DENIED = "permission_request_denied"
    PERMISSION_REQUEST_CANCELED = "permission_request_canceled"

    # =========================================================================
    # Roles
    # =========================================================================

    ROLE_CHANGED = "role_changed"
    ROLE_INCONSISTENCY_FIXED = "role_inconsistency_fixed"
