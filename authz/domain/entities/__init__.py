"""Domain entities."""

from authz.domain.entities.permission_audit_entry import PermissionAuditEntry
from authz.domain.entities.permission_bundle import PermissionBundle
from authz.domain.entities.permission_request import PermissionRequest
from authz.domain.entities.principal_profile import PrincipalProfile
from authz.domain.entities.principal_record import PrincipalRecord
from authz.domain.entities.resource_permission_grant import ResourcePermissionGrant

__all__ = [
    "PermissionAuditEntry",
    "PermissionBundle",
    "PermissionRequest",
    "PrincipalProfile",
    "PrincipalRecord",
    "ResourcePermissionGrant",
]
