"""Authorization dependency factories.

Request-scoped services built from a database session, an audit adapter on
its own session, and the app-scoped cache, identity provider, clock, logger
and locks. Also the run-once job entry points for an external scheduler.

Usage:
    # Presentation Layer (FastAPI Depends)
    @router.post("/listings/{listing_id}/approve")
    async def approve(
        listing_id: str,
        permissions: PermissionService = Depends(get_permission_service),
    ):
        ...

    # Scheduler
    result = await run_resource_permission_expiration()
"""

from typing import TYPE_CHECKING

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from authz.core.config import settings
from authz.core.container.infrastructure import (
    get_audit,
    get_clock,
    get_database,
    get_db_session,
    get_identity_provider,
    get_locks,
    get_logger,
    get_permission_cache,
)

if TYPE_CHECKING:
    from authz.application.dtos import ExpirationRunResult
    from authz.application.jobs import (
        CancellationToken,
        ResourcePermissionExpirationJob,
        TemporaryPermissionExpirationJob,
    )
    from authz.application.services import (
        PermissionBundleService,
        PermissionRequestService,
        PermissionService,
        ResourcePermissionService,
        RoleConsistencyVerifier,
    )
    from authz.domain.protocols import PermissionAuditProtocol


# ============================================================================
# Service Factories (Request-Scoped)
# ============================================================================


async def get_permission_service(
    session: AsyncSession = Depends(get_db_session),
    audit: "PermissionAuditProtocol" = Depends(get_audit),
) -> "PermissionService":
    """Get permission service (request-scoped).

    Args:
        session: Database session for the principal repository.
        audit: Audit adapter on its own session.

    Returns:
        PermissionService instance.
    """
    from authz.application.services import PermissionService
    from authz.infrastructure.persistence.repositories import PrincipalRepository

    return PermissionService(
        identity_provider=get_identity_provider(),
        principal_repository=PrincipalRepository(session=session),
        cache=get_permission_cache(),
        audit=audit,
        logger=get_logger(),
        clock=get_clock(),
        locks=get_locks(),
    )


async def get_resource_permission_service(
    session: AsyncSession = Depends(get_db_session),
    audit: "PermissionAuditProtocol" = Depends(get_audit),
) -> "ResourcePermissionService":
    """Get resource permission service (request-scoped)."""
    from authz.application.services import ResourcePermissionService
    from authz.infrastructure.persistence.repositories import (
        ResourcePermissionRepository,
    )

    return ResourcePermissionService(
        repository=ResourcePermissionRepository(session=session),
        permission_service=await get_permission_service(session=session, audit=audit),
        audit=audit,
        logger=get_logger(),
        clock=get_clock(),
        locks=get_locks(),
    )


async def get_permission_bundle_service(
    session: AsyncSession = Depends(get_db_session),
    audit: "PermissionAuditProtocol" = Depends(get_audit),
) -> "PermissionBundleService":
    """Get permission bundle service (request-scoped)."""
    from authz.application.services import PermissionBundleService
    from authz.infrastructure.persistence.repositories import (
        PermissionBundleRepository,
    )

    return PermissionBundleService(
        repository=PermissionBundleRepository(session=session),
        identity_provider=get_identity_provider(),
        permission_service=await get_permission_service(session=session, audit=audit),
        audit=audit,
        logger=get_logger(),
        clock=get_clock(),
    )


async def get_permission_request_service(
    session: AsyncSession = Depends(get_db_session),
    audit: "PermissionAuditProtocol" = Depends(get_audit),
) -> "PermissionRequestService":
    """Get permission request service (request-scoped).

    The grant services it approves through share one PermissionService.
    """
    from authz.application.services import (
        PermissionBundleService,
        PermissionRequestService,
        ResourcePermissionService,
    )
    from authz.infrastructure.persistence.repositories import (
        PermissionBundleRepository,
        PermissionRequestRepository,
        ResourcePermissionRepository,
    )

    permission_service = await get_permission_service(session=session, audit=audit)
    return PermissionRequestService(
        repository=PermissionRequestRepository(session=session),
        permission_service=permission_service,
        bundle_service=PermissionBundleService(
            repository=PermissionBundleRepository(session=session),
            identity_provider=get_identity_provider(),
            permission_service=permission_service,
            audit=audit,
            logger=get_logger(),
            clock=get_clock(),
        ),
        resource_service=ResourcePermissionService(
            repository=ResourcePermissionRepository(session=session),
            permission_service=permission_service,
            audit=audit,
            logger=get_logger(),
            clock=get_clock(),
            locks=get_locks(),
        ),
        audit=audit,
        logger=get_logger(),
        clock=get_clock(),
        locks=get_locks(),
    )


async def get_role_consistency_verifier(
    session: AsyncSession = Depends(get_db_session),
    audit: "PermissionAuditProtocol" = Depends(get_audit),
) -> "RoleConsistencyVerifier":
    """Get role consistency verifier (request-scoped)."""
    from authz.application.services import RoleConsistencyVerifier
    from authz.infrastructure.persistence.repositories import PrincipalRepository

    return RoleConsistencyVerifier(
        principal_repository=PrincipalRepository(session=session),
        identity_provider=get_identity_provider(),
        permission_service=await get_permission_service(session=session, audit=audit),
        audit=audit,
        logger=get_logger(),
        clock=get_clock(),
        default_limit=settings.role_verification_limit,
    )


# ============================================================================
# Job Factories
# ============================================================================


async def get_temporary_permission_expiration_job(
    session: AsyncSession,
    audit: "PermissionAuditProtocol",
) -> "TemporaryPermissionExpirationJob":
    """Get the temporary permission reconciler."""
    from authz.application.jobs import TemporaryPermissionExpirationJob

    return TemporaryPermissionExpirationJob(
        identity_provider=get_identity_provider(),
        permission_service=await get_permission_service(session=session, audit=audit),
        audit=audit,
        logger=get_logger(),
        clock=get_clock(),
        batch_size=settings.expiration_batch_size,
        max_fetch_retries=settings.expiration_max_fetch_retries,
        retry_backoff_seconds=settings.expiration_retry_backoff_seconds,
    )


async def get_resource_permission_expiration_job(
    session: AsyncSession,
    audit: "PermissionAuditProtocol",
) -> "ResourcePermissionExpirationJob":
    """Get the resource permission reconciler."""
    from authz.application.jobs import ResourcePermissionExpirationJob
    from authz.infrastructure.persistence.repositories import (
        ResourcePermissionRepository,
    )

    return ResourcePermissionExpirationJob(
        repository=ResourcePermissionRepository(session=session),
        permission_service=await get_permission_service(session=session, audit=audit),
        audit=audit,
        logger=get_logger(),
        clock=get_clock(),
        batch_size=settings.expiration_batch_size,
        max_fetch_retries=settings.expiration_max_fetch_retries,
        retry_backoff_seconds=settings.expiration_retry_backoff_seconds,
    )


# ============================================================================
# Run-Once Entry Points
# ============================================================================


async def run_temporary_permission_expiration(
    cancellation: "CancellationToken | None" = None,
) -> "ExpirationRunResult":
    """Run the temporary permission reconciler once.

    Opens its own sessions; the permission cache must be initialized.

    Returns:
        ExpirationRunResult: Run statistics.
    """
    from authz.infrastructure.audit import DatabaseAuditAdapter

    db = get_database()
    async with db.get_session() as session, db.get_session() as audit_session:
        audit = DatabaseAuditAdapter(session=audit_session, clock=get_clock())
        job = await get_temporary_permission_expiration_job(session=session, audit=audit)
        return await job.run(cancellation)


async def run_resource_permission_expiration(
    cancellation: "CancellationToken | None" = None,
) -> "ExpirationRunResult":
    """Run the resource permission reconciler once.

    Opens its own sessions; the permission cache must be initialized.

    Returns:
        ExpirationRunResult: Run statistics.
    """
    from authz.infrastructure.audit import DatabaseAuditAdapter

    db = get_database()
    async with db.get_session() as session, db.get_session() as audit_session:
        audit = DatabaseAuditAdapter(session=audit_session, clock=get_clock())
        job = await get_resource_permission_expiration_job(session=session, audit=audit)
        return await job.run(cancellation)
