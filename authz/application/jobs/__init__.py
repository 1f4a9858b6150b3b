"""Batch jobs invoked by an external scheduler."""

from authz.application.jobs.cancellation import CancellationToken
from authz.application.jobs.resource_permission_expiration import (
    ResourcePermissionExpirationJob,
)
from authz.application.jobs.temporary_permission_expiration import (
    TemporaryPermissionExpirationJob,
)

__all__ = [
    "CancellationToken",
    "ResourcePermissionExpirationJob",
    "TemporaryPermissionExpirationJob",
]
