"""Database models.

Importing this package registers every table on BaseModel.metadata.
"""

from authz.infrastructure.persistence.base import BaseModel
from authz.infrastructure.persistence.models.permission_audit_log import (
    PermissionAuditLog,
)
from authz.infrastructure.persistence.models.permission_bundle import PermissionBundle
from authz.infrastructure.persistence.models.permission_request import (
    PermissionRequest,
)
from authz.infrastructure.persistence.models.principal import Principal
from authz.infrastructure.persistence.models.resource_permission import (
    ResourcePermission,
)

__all__ = [
    "BaseModel",
    "PermissionAuditLog",
    "PermissionBundle",
    "PermissionRequest",
    "Principal",
    "ResourcePermission",
]
