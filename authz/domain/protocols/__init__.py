"""Domain protocols (ports) package.

Infrastructure adapters implement these protocols without inheritance.

Usage:
    from authz.domain.protocols import IdentityProviderProtocol, LoggerProtocol
"""

# Service protocols
from authz.domain.protocols.audit_protocol import PermissionAuditProtocol
from authz.domain.protocols.clock_protocol import ClockProtocol
from authz.domain.protocols.identity_provider_protocol import IdentityProviderProtocol
from authz.domain.protocols.logger_protocol import LoggerProtocol
from authz.domain.protocols.permission_cache_protocol import (
    CacheInvalidationBusProtocol,
    PermissionCacheProtocol,
    PermissionCacheStats,
    ResolvedPermissions,
)

# Repository protocols
from authz.domain.protocols.permission_bundle_repository import (
    PermissionBundleRepository,
)
from authz.domain.protocols.permission_request_repository import (
    PermissionRequestRepository,
)
from authz.domain.protocols.principal_repository import PrincipalRepository
from authz.domain.protocols.resource_permission_repository import (
    ResourcePermissionRepository,
)

__all__ = [
    "CacheInvalidationBusProtocol",
    "ClockProtocol",
    "IdentityProviderProtocol",
    "LoggerProtocol",
    "PermissionAuditProtocol",
    "PermissionBundleRepository",
    "PermissionCacheProtocol",
    "PermissionCacheStats",
    "PermissionRequestRepository",
    "PrincipalRepository",
    "ResolvedPermissions",
    "ResourcePermissionRepository",
]
