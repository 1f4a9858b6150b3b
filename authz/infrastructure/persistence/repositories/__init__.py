"""SQLAlchemy repository implementations."""

from authz.infrastructure.persistence.repositories.permission_bundle_repository import (
    PermissionBundleRepository,
)
from authz.infrastructure.persistence.repositories.permission_request_repository import (
    PermissionRequestRepository,
)
from authz.infrastructure.persistence.repositories.principal_repository import (
    PrincipalRepository,
)
from authz.infrastructure.persistence.repositories.resource_permission_repository import (
    ResourcePermissionRepository,
)

__all__ = [
    "PermissionBundleRepository",
    "PermissionRequestRepository",
    "PrincipalRepository",
    "ResourcePermissionRepository",
]
