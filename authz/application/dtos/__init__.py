"""Application DTOs."""

from authz.application.dtos.expiration_dtos import ExpirationRunResult
from authz.application.dtos.permission_dtos import (
    BundleApplication,
    PermissionRequestPage,
    RevokeResult,
    RoleChangeResult,
)
from authz.application.dtos.role_consistency_dtos import (
    RoleConsistencyCheck,
    RoleFixResult,
    RoleVerificationDetail,
    RoleVerificationReport,
)

__all__ = [
    "BundleApplication",
    "ExpirationRunResult",
    "PermissionRequestPage",
    "RevokeResult",
    "RoleChangeResult",
    "RoleConsistencyCheck",
    "RoleFixResult",
    "RoleVerificationDetail",
    "RoleVerificationReport",
]
