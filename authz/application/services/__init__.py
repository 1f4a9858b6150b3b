"""Application services."""

from authz.application.services.permission_bundle_service import PermissionBundleService
from authz.application.services.permission_request_service import (
    PermissionRequestService,
)
from authz.application.services.permission_service import PermissionService
from authz.application.services.resource_permission_service import (
    ResourcePermissionService,
)
from authz.application.services.role_consistency_verifier import RoleConsistencyVerifier

__all__ = [
    "PermissionBundleService",
    "PermissionRequestService",
    "PermissionService",
    "ResourcePermissionService",
    "RoleConsistencyVerifier",
]
