"""Centralized constants for internal implementation details.

These are NOT environment-specific configuration. For settings that vary by
deployment, use `authz.core.config` instead.

Categories:
- Cache tuning: eviction fraction, derived-table sweep thresholds and the
  invalidation channel
- Actors: names recorded when the system itself performs a change
- Identity provider: metadata keys used in the profile blob
- Permission requests: justification bounds and page sizes
"""

# =============================================================================
# Permission Cache
# =============================================================================

CACHE_EVICTION_FRACTION: float = 0.2
"""Fraction of max_size evicted (oldest first) when the full-list table overflows."""

PERMISSION_TABLE_SWEEP_MULTIPLIER: int = 20
"""Single-permission table is swept of expired entries above max_size * this."""

DOMAIN_TABLE_SWEEP_MULTIPLIER: int = 5
"""Domain-map table is swept of expired entries above max_size * this."""

CACHE_INVALIDATION_CHANNEL: str = "authz:permission-cache:invalidations"
"""Redis pub/sub channel carrying cache invalidations between processes."""

CACHE_INVALIDATION_RESUBSCRIBE_SECONDS: float = 1.0
"""Delay before the invalidation listener resubscribes after losing Redis."""


# =============================================================================
# Actors
# =============================================================================

SYSTEM_ACTOR: str = "system"
"""Actor recorded for automated changes (reconcilers, seeders)."""

EXPIRATION_REVOCATION_REASON: str = "Automatic expiration"
"""Revocation reason stamped on resource grants deactivated by the reconciler."""

TEMPORARY_EXPIRATION_SOURCE: str = "permission-expiration-processor"
"""Source stamped into profile metadata by the temporary-permission reconciler."""


# =============================================================================
# Identity Provider Metadata Keys
# =============================================================================

METADATA_ROLE: str = "role"
METADATA_PERMISSIONS: str = "permissions"
METADATA_TEMPORARY_PERMISSIONS: str = "temporaryPermissions"
METADATA_PERMISSION_METADATA: str = "permissionMetadata"
METADATA_LAST_PERMISSION_UPDATE: str = "lastPermissionUpdate"

MANAGED_METADATA_KEYS: frozenset[str] = frozenset(
    {
        METADATA_ROLE,
        METADATA_PERMISSIONS,
        METADATA_TEMPORARY_PERMISSIONS,
        METADATA_PERMISSION_METADATA,
    }
)
"""Keys owned by this package; every other metadata key is carried through untouched."""


# =============================================================================
# Permission Requests
# =============================================================================

PERMISSION_REQUEST_JUSTIFICATION_MIN_LENGTH: int = 10
PERMISSION_REQUEST_JUSTIFICATION_MAX_LENGTH: int = 1000

PERMISSION_REQUEST_PAGE_SIZE: int = 50
"""Default page size when listing permission requests."""

PERMISSION_REQUEST_MAX_PAGE_SIZE: int = 200

APPROVAL_REASON_TEMPLATE: str = "Approved via request {request_id}"
"""Grant reason recorded when a request is approved."""


# =============================================================================
# Response Limits
# =============================================================================

RESPONSE_BODY_MAX_LENGTH: int = 500
"""Maximum response body length kept in error details."""
