"""Container module - Centralized dependency injection.

Re-exports all factory functions from submodules:

    from authz.core.container import get_permission_service, init_permission_cache

The container is organized into modules:
- infrastructure: Logging, database, identity provider, clock, locks,
  permission cache lifecycle, sessions, audit
- authorization: Service and job factories, run-once job entry points
"""

# Infrastructure services
from authz.core.container.infrastructure import (
    get_audit,
    get_audit_session,
    get_clock,
    get_database,
    get_db_session,
    get_identity_provider,
    get_locks,
    get_logger,
    get_permission_cache,
    init_permission_cache,
    shutdown_permission_cache,
)

# Authorization services and jobs
from authz.core.container.authorization import (
    get_permission_bundle_service,
    get_permission_request_service,
    get_permission_service,
    get_resource_permission_expiration_job,
    get_resource_permission_service,
    get_role_consistency_verifier,
    get_temporary_permission_expiration_job,
    run_resource_permission_expiration,
    run_temporary_permission_expiration,
)

__all__ = [
    # Infrastructure
    "get_audit",
    "get_audit_session",
    "get_clock",
    "get_database",
    "get_db_session",
    "get_identity_provider",
    "get_locks",
    "get_logger",
    "get_permission_cache",
    "init_permission_cache",
    "shutdown_permission_cache",
    # Authorization
    "get_permission_bundle_service",
    "get_permission_request_service",
    "get_permission_service",
    "get_resource_permission_expiration_job",
    "get_resource_permission_service",
    "get_role_consistency_verifier",
    "get_temporary_permission_expiration_job",
    "run_resource_permission_expiration",
    "run_temporary_permission_expiration",
]
