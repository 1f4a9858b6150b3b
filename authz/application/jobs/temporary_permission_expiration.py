"""Temporary permission expiration job.

Scans identity provider profiles page by page and removes temporary grants
whose expiry has passed, from both the temporary-permission map and the
explicit list. Reads already ignore expired entries; this job is the
write-time cleanup.

Safe to re-run: a profile with nothing expired is not written.
"""

from authz.application.dtos import ExpirationRunResult
from authz.application.jobs.batch import fetch_with_retry
from authz.application.jobs.cancellation import CancellationToken
from authz.application.services.permission_service import PermissionService
from authz.core.constants import (
    METADATA_LAST_PERMISSION_UPDATE,
    SYSTEM_ACTOR,
    TEMPORARY_EXPIRATION_SOURCE,
)
from authz.core.result import Failure
from authz.domain.entities import PrincipalProfile
from authz.domain.enums import AuditAction
from authz.domain.protocols import (
    ClockProtocol,
    IdentityProviderProtocol,
    LoggerProtocol,
    PermissionAuditProtocol,
)

JOB_NAME = "temporary_permission_expiration"


class TemporaryPermissionExpirationJob:
    """Reconciler for principal-wide temporary permissions."""

    def __init__(
        self,
        *,
        identity_provider: IdentityProviderProtocol,
        permission_service: PermissionService,
        audit: PermissionAuditProtocol,
        logger: LoggerProtocol,
        clock: ClockProtocol,
        batch_size: int = 100,
        max_fetch_retries: int = 2,
        retry_backoff_seconds: float = 0.5,
    ) -> None:
        self._identity_provider = identity_provider
        self._permissions = permission_service
        self._audit = audit
        self._logger = logger
        self._clock = clock
        self._batch_size = batch_size
        self._max_fetch_retries = max_fetch_retries
        self._retry_backoff_seconds = retry_backoff_seconds

    async def run(self, cancellation: CancellationToken | None = None) -> ExpirationRunResult:
        """Run once over every profile.

        Args:
            cancellation: Checked before each batch fetch.

        Returns:
            ExpirationRunResult: Terminal statistics (partial if aborted or
            cancelled).
        """
        result = ExpirationRunResult(started_at=self._clock.now())
        self._logger.info("expiration_job_started", job=JOB_NAME, batch_size=self._batch_size)

        offset = 0
        while True:
            if cancellation is not None and cancellation.is_cancelled:
                result.cancelled = True
                self._logger.warning("expiration_job_cancelled", job=JOB_NAME, offset=offset)
                break

            fetched = await fetch_with_retry(
                lambda: self._identity_provider.list_profiles(
                    limit=self._batch_size, offset=offset
                ),
                max_retries=self._max_fetch_retries,
                backoff_seconds=self._retry_backoff_seconds,
                logger=self._logger,
                job=JOB_NAME,
            )
            if isinstance(fetched, Failure):
                result.aborted = True
                result.add_error(batch=True, offset=offset, error=fetched.error.message)
                self._logger.error(
                    "expiration_batch_fetch_failed",
                    job=JOB_NAME,
                    offset=offset,
                    error_code=fetched.error.code.value,
                    error_message=fetched.error.message,
                )
                break

            batch = fetched.value
            for profile in batch:
                result.processed += 1
                try:
                    await self._process(profile, result)
                except Exception as e:
                    result.add_error(principal_id=profile.id, error=str(e))
                    self._logger.error(
                        "expiration_item_failed", error=e, job=JOB_NAME, principal_id=profile.id
                    )

            self._logger.debug(
                "expiration_batch_processed",
                job=JOB_NAME,
                offset=offset,
                batch_count=len(batch),
                processed=result.processed,
                updated=result.updated,
            )
            if len(batch) < self._batch_size:
                break
            offset += len(batch)

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

    async def _process(self, profile: PrincipalProfile, result: ExpirationRunResult) -> None:
        if profile.metadata_errors:
            result.add_error(
                principal_id=profile.id,
                error=f"Malformed permission metadata: {'; '.join(profile.metadata_errors)}",
            )
            self._logger.warning(
                "expiration_item_malformed",
                job=JOB_NAME,
                principal_id=profile.id,
                metadata_errors=profile.metadata_errors,
            )
            return

        if not _expired_keys(profile, self._clock):
            return
        result.expired_found += 1

        async with self._permissions.locks.acquire(("profile", profile.id)):
            # Re-read so a grant written since the page was fetched survives
            loaded = await self._identity_provider.get_profile(profile.id)
            if isinstance(loaded, Failure):
                result.add_error(principal_id=profile.id, error=loaded.error.message)
                return
            current = loaded.value
            now = self._clock.now()
            expired = _expired_keys(current, self._clock)
            if not expired:
                return

            for permission in expired:
                del current.temporary_permissions[permission]
                current.permission_metadata.pop(permission, None)
            current.permissions = [p for p in current.permissions if p not in expired]
            current.extra_metadata[METADATA_LAST_PERMISSION_UPDATE] = {
                "timestamp": now.isoformat(),
                "source": TEMPORARY_EXPIRATION_SOURCE,
                "removed": expired,
            }

            written = await self._identity_provider.update_profile(current)
            if isinstance(written, Failure):
                result.add_error(principal_id=profile.id, error=written.error.message)
                self._logger.warning(
                    "expiration_item_write_failed",
                    job=JOB_NAME,
                    principal_id=profile.id,
                    error_code=written.error.code.value,
                )
                return

        result.updated += 1
        await self._permissions.clear_user_permission_cache(profile.id)
        audit_result = await self._audit.record(
            action=AuditAction.TEMPORARY_PERMISSIONS_EXPIRED,
            principal_id=profile.id,
            actor=SYSTEM_ACTOR,
            context={"permissions": expired},
        )
        if isinstance(audit_result, Failure):
            self._logger.warning(
                "permission_audit_failed",
                action=AuditAction.TEMPORARY_PERMISSIONS_EXPIRED.value,
                principal_id=profile.id,
                error_message=audit_result.error.message,
            )
        self._logger.info(
            "temporary_permissions_expired", principal_id=profile.id, permissions=expired
        )


def _expired_keys(profile: PrincipalProfile, clock: ClockProtocol) -> list[str]:
    now = clock.now()
    return [
        permission
        for permission, grant in profile.temporary_permissions.items()
        if not grant.is_active(now)
    ]

