"""Resource permission expiration job.

Deactivates resource grants that are still active but past their expiry,
paging through them by id. Checks already ignore expired grants; this job
stamps the revocation fields so the table reflects it.

Safe to re-run: deactivation is conditional on the grant still being active
and expired, so a grant handled by a previous or concurrent run is skipped.
"""

from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from authz.application.dtos import ExpirationRunResult
from authz.application.errors import store_failure
from authz.application.jobs.batch import fetch_with_retry
from authz.application.jobs.cancellation import CancellationToken
from authz.application.services.permission_service import PermissionService
from authz.core.constants import EXPIRATION_REVOCATION_REASON, SYSTEM_ACTOR
from authz.core.errors import DomainError
from authz.core.result import Failure, Result, Success
from authz.domain.entities import ResourcePermissionGrant
from authz.domain.enums import AuditAction
from authz.domain.protocols import (
    ClockProtocol,
    LoggerProtocol,
    PermissionAuditProtocol,
    ResourcePermissionRepository,
)

JOB_NAME = "resource_permission_expiration"


class ResourcePermissionExpirationJob:
    """Reconciler for resource-scoped grants."""

    def __init__(
        self,
        *,
        repository: ResourcePermissionRepository,
        permission_service: PermissionService,
        audit: PermissionAuditProtocol,
        logger: LoggerProtocol,
        clock: ClockProtocol,
        batch_size: int = 100,
        max_fetch_retries: int = 2,
        retry_backoff_seconds: float = 0.5,
    ) -> None:
        self._repository = repository
        self._permissions = permission_service
        self._audit = audit
        self._logger = logger
        self._clock = clock
        self._batch_size = batch_size
        self._max_fetch_retries = max_fetch_retries
        self._retry_backoff_seconds = retry_backoff_seconds

    async def run(self, cancellation: CancellationToken | None = None) -> ExpirationRunResult:
        """Run once over every expired, still-active grant.

        Args:
            cancellation: Checked before each batch fetch.

        Returns:
            ExpirationRunResult: Terminal statistics (partial if aborted or
            cancelled).
        """
        result = ExpirationRunResult(started_at=self._clock.now())
        self._logger.info("expiration_job_started", job=JOB_NAME, batch_size=self._batch_size)

        after_id: UUID | None = None
        while True:
            if cancellation is not None and cancellation.is_cancelled:
                result.cancelled = True
                self._logger.warning("expiration_job_cancelled", job=JOB_NAME)
                break

            fetched = await fetch_with_retry(
                lambda: self._fetch(after_id),
                max_retries=self._max_fetch_retries,
                backoff_seconds=self._retry_backoff_seconds,
                logger=self._logger,
                job=JOB_NAME,
            )
            if isinstance(fetched, Failure):
                result.aborted = True
                result.add_error(
                    batch=True,
                    after_id=str(after_id) if after_id else None,
                    error=fetched.error.message,
                )
                self._logger.error(
                    "expiration_batch_fetch_failed",
                    job=JOB_NAME,
                    error_code=fetched.error.code.value,
                    error_message=fetched.error.message,
                )
                break

            batch = fetched.value
            for grant in batch:
                result.processed += 1
                result.expired_found += 1
                try:
                    await self._deactivate(grant, result)
                except Exception as e:
                    result.add_error(
                        grant_id=str(grant.id), principal_id=grant.principal_id, error=str(e)
                    )
                    self._logger.error(
                        "expiration_item_failed",
                        error=e,
                        job=JOB_NAME,
                        grant_id=str(grant.id),
                        principal_id=grant.principal_id,
                    )

            self._logger.debug(
                "expiration_batch_processed",
                job=JOB_NAME,
                batch_count=len(batch),
                processed=result.processed,
                updated=result.updated,
            )
            if len(batch) < self._batch_size:
                break
            after_id = batch[-1].id

        result.finished_at = self._clock.now()
        self._logger.info(
            "expiration_job_completed",
            job=JOB_NAME,
            processed=result.processed,
            expired_found=result.expired_found,
            updated=result.updated,
            errors=result.errors,
            aborted=result.aborted,
            cancelled=result.cancelled,
        )
        return result

    async def _fetch(
        self, after_id: UUID | None
    ) -> Result[list[ResourcePermissionGrant], DomainError]:
        try:
            grants = await self._repository.list_expired_active(
                self._clock.now(), limit=self._batch_size, after_id=after_id
            )
        except SQLAlchemyError as e:
            return store_failure(e, "list_expired_active")
        return Success(value=grants)

    async def _deactivate(self, grant: ResourcePermissionGrant, result: ExpirationRunResult) -> None:
        deactivated = await self._repository.deactivate_expired(
            grant.id,
            now=self._clock.now(),
            revoked_by=SYSTEM_ACTOR,
            reason=EXPIRATION_REVOCATION_REASON,
        )
        if not deactivated:
            return

        result.updated += 1
        await self._permissions.clear_user_permission_cache(grant.principal_id)
        audit_result = await self._audit.record(
            action=AuditAction.RESOURCE_PERMISSION_EXPIRED,
            principal_id=grant.principal_id,
            actor=SYSTEM_ACTOR,
            context={
                "grant_id": str(grant.id),
                "permission": grant.permission,
                "resource_type": grant.resource_type,
                "resource_id": grant.resource_id,
                "expires_at": grant.expires_at.isoformat() if grant.expires_at else None,
            },
        )
        if isinstance(audit_result, Failure):
            self._logger.warning(
                "permission_audit_failed",
                action=AuditAction.RESOURCE_PERMISSION_EXPIRED.value,
                principal_id=grant.principal_id,
                error_message=audit_result.error.message,
            )
        self._logger.info(
            "resource_permission_expired",
            grant_id=str(grant.id),
            principal_id=grant.principal_id,
            permission=grant.permission,
        )
