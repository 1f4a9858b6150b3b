"""Domain enums.

Available Enums:
    - UserRole: Roles (user, agent, moderator, admin)
    - PermissionDomain: Functional permission groupings
    - PermissionSource: Provenance of explicit permissions
    - AuditAction: Auditable permission events
    - FixDirection: Role divergence healing direction
    - ResourceScope: Unrestricted resource sentinel
    - PermissionRequestStatus: Permission request lifecycle
"""

from authz.domain.enums.audit_action import AuditAction
from authz.domain.enums.fix_direction import FixDirection
from authz.domain.enums.permission_domain import PermissionDomain
from authz.domain.enums.permission_request_status import PermissionRequestStatus
from authz.domain.enums.permission_source import PermissionSource
from authz.domain.enums.resource_scope import ResourceScope
from authz.domain.enums.user_role import UserRole

__all__ = [
    "AuditAction",
    "FixDirection",
    "PermissionDomain",
    "PermissionRequestStatus",
    "PermissionSource",
    "ResourceScope",
    "UserRole",
]
