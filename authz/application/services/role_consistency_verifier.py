"""Role consistency verifier.

The application database is the system of record for a principal's role and
the identity provider profile mirrors it. This verifier detects divergence
between the two and, on explicit instruction, heals it in a caller-chosen
direction. It is the only sanctioned path for writing the role to one store
alone.

Usage:
    report = await verifier.verify_role_consistency(limit=100)
    match report:
        case Success(value=report) if report.inconsistent:
            ...
"""

from collections.abc import Callable

from sqlalchemy.exc import SQLAlchemyError

from authz.application.dtos import (
    RoleConsistencyCheck,
    RoleFixResult,
    RoleVerificationDetail,
    RoleVerificationReport,
)
from authz.application.errors import store_failure
from authz.application.services.permission_service import (
    PermissionService,
    validate_principal_id,
)
from authz.core.constants import SYSTEM_ACTOR
from authz.core.enums import ErrorCode
from authz.core.errors import DomainError, ValidationError
from authz.core.result import Failure, Result, Success
from authz.domain.entities import PrincipalRecord
from authz.domain.enums import AuditAction, FixDirection, UserRole
from authz.domain.protocols import (
    ClockProtocol,
    IdentityProviderProtocol,
    LoggerProtocol,
    PermissionAuditProtocol,
    PrincipalRepository,
)

MISSING_RECORD_MESSAGE = "Principal not found in database"


class RoleConsistencyVerifier:
    """Cross-store role verification and healing."""

    def __init__(
        self,
        *,
        principal_repository: PrincipalRepository,
        identity_provider: IdentityProviderProtocol,
        permission_service: PermissionService,
        audit: PermissionAuditProtocol,
        logger: LoggerProtocol,
        clock: ClockProtocol,
        default_limit: int = 100,
    ) -> None:
        self._principals = principal_repository
        self._identity_provider = identity_provider
        self._permissions = permission_service
        self._audit = audit
        self._logger = logger
        self._clock = clock
        self._default_limit = default_limit

    async def check_user_role_consistency(
        self, principal_id: str
    ) -> Result[RoleConsistencyCheck, DomainError]:
        """Compare one principal's role in both stores.

        Roles are compared as stored; a missing role in the profile does not
        match "user" in the database.

        Args:
            principal_id: Identity provider user id.

        Returns:
            Success(RoleConsistencyCheck), or Failure if either store could
            not be read. A principal missing from the database is reported
            as inconsistent with an error message, not as a Failure.
        """
        invalid = validate_principal_id(principal_id)
        if invalid is not None:
            return invalid

        loaded = await self._identity_provider.get_profile(principal_id)
        if isinstance(loaded, Failure):
            return loaded
        profile = loaded.value

        try:
            record = await self._principals.find_by_external_id(principal_id)
        except SQLAlchemyError as e:
            self._logger.error("role_consistency_check_failed", error=e, principal_id=principal_id)
            return store_failure(e, "check_user_role_consistency")

        if record is None:
            return Success(
                value=RoleConsistencyCheck(
                    principal_id=principal_id,
                    consistent=False,
                    identity_provider_role=profile.role,
                    database_role=None,
                    email=profile.email,
                    first_name=profile.first_name,
                    last_name=profile.last_name,
                    error=MISSING_RECORD_MESSAGE,
                )
            )

        return Success(
            value=RoleConsistencyCheck(
                principal_id=principal_id,
                consistent=profile.role == record.role,
                identity_provider_role=profile.role,
                database_role=record.role,
                email=record.email or profile.email,
                first_name=record.first_name or profile.first_name,
                last_name=record.last_name or profile.last_name,
                database_id=record.id,
            )
        )

    async def verify_role_consistency(
        self,
        *,
        limit: int | None = None,
        auto_fix: bool = False,
        fix_direction: FixDirection | str = FixDirection.TO_IDENTITY_PROVIDER,
        on_progress: Callable[[int, int], None] | None = None,
    ) -> Result[RoleVerificationReport, DomainError]:
        """Verify one bounded page of non-deleted principals.

        A principal that cannot be compared is counted in `errors` and the
        run continues.

        Args:
            limit: Page size (defaults to the configured verification limit).
            auto_fix: Heal divergences as they are found.
            fix_direction: Direction used by auto-fix.
            on_progress: Called with (processed, total) after each principal.

        Returns:
            Success(RoleVerificationReport), or Failure if the page itself
            could not be read.
        """
        try:
            direction = FixDirection.parse(fix_direction)
        except ValueError:
            return Failure(
                error=ValidationError(
                    code=ErrorCode.INVALID_FIX_DIRECTION,
                    message=f"Invalid fix direction: {fix_direction}",
                    field="fix_direction",
                )
            )
        report = RoleVerificationReport(timestamp=self._clock.now())

        try:
            records = await self._principals.list_active(limit=limit or self._default_limit)
        except SQLAlchemyError as e:
            self._logger.error("role_verification_fetch_failed", error=e)
            return store_failure(e, "verify_role_consistency")

        report.total = len(records)
        self._logger.info(
            "role_verification_started",
            total=report.total,
            auto_fix=auto_fix,
            fix_direction=direction.value,
        )

        for processed, record in enumerate(records, start=1):
            await self._verify_one(record, report, auto_fix=auto_fix, direction=direction)
            if on_progress is not None:
                on_progress(processed, report.total)

        self._logger.info(
            "role_verification_completed",
            total=report.total,
            consistent=report.consistent,
            inconsistent=report.inconsistent,
            errors=report.errors,
            fixed=report.fixed,
        )
        return Success(value=report)

    async def _verify_one(
        self,
        record: PrincipalRecord,
        report: RoleVerificationReport,
        *,
        auto_fix: bool,
        direction: FixDirection,
    ) -> None:
        detail = RoleVerificationDetail(
            principal_id=record.external_id,
            database_id=record.id,
            email=record.email,
            name=" ".join(n for n in (record.first_name, record.last_name) if n) or "Unknown",
            identity_provider_role=None,
            database_role=record.role,
        )

        loaded = await self._identity_provider.get_profile(record.external_id)
        if isinstance(loaded, Failure):
            report.errors += 1
            detail.error = loaded.error.message
            report.details.append(detail)
            self._logger.warning(
                "role_verification_item_failed",
                principal_id=record.external_id,
                error_code=loaded.error.code.value,
                error_message=loaded.error.message,
            )
            return

        detail.identity_provider_role = loaded.value.role
        if loaded.value.role == record.role:
            report.consistent += 1
            return

        report.inconsistent += 1
        report.details.append(detail)
        self._logger.warning(
            "role_inconsistency_detected",
            principal_id=record.external_id,
            identity_provider_role=loaded.value.role,
            database_role=record.role,
        )

        if auto_fix:
            fix = await self._apply_fix(
                record.external_id,
                identity_provider_role=loaded.value.role,
                database_role=record.role,
                direction=direction,
            )
            if fix.success:
                report.fixed += 1
                detail.fixed = True
                detail.fix_direction = direction
            else:
                detail.fix_error = fix.message

    async def fix_user_role_inconsistency(
        self,
        principal_id: str,
        direction: FixDirection | str,
    ) -> Result[RoleFixResult, DomainError]:
        """Heal one principal by copying one store's role over the other's.

        Args:
            principal_id: Identity provider user id.
            direction: TO_IDENTITY_PROVIDER ("toClerk") or TO_DATABASE ("toDb").

        Returns:
            Success(RoleFixResult) (check `success`), or Failure if a store
            could not be read.
        """
        try:
            direction = FixDirection.parse(direction)
        except ValueError:
            return Success(
                value=RoleFixResult(
                    success=False,
                    principal_id=principal_id,
                    message=f"Invalid fix direction: {direction}",
                    consistent=False,
                )
            )

        checked = await self.check_user_role_consistency(principal_id)
        if isinstance(checked, Failure):
            return checked
        check = checked.value

        if check.error is not None:
            return Success(
                value=RoleFixResult(
                    success=False,
                    principal_id=principal_id,
                    message=check.error,
                    consistent=False,
                )
            )
        if check.consistent:
            return Success(
                value=RoleFixResult(
                    success=True,
                    principal_id=principal_id,
                    message="Roles are already consistent",
                    consistent=True,
                    role=check.database_role,
                )
            )

        return Success(
            value=await self._apply_fix(
                principal_id,
                identity_provider_role=check.identity_provider_role,
                database_role=check.database_role,
                direction=direction,
            )
        )

    async def _apply_fix(
        self,
        principal_id: str,
        *,
        identity_provider_role: str | None,
        database_role: str,
        direction: FixDirection,
    ) -> RoleFixResult:
        now = self._clock.now()

        if direction == FixDirection.TO_IDENTITY_PROVIDER:
            role = database_role
            async with self._permissions.locks.acquire(("profile", principal_id)):
                loaded = await self._identity_provider.get_profile(principal_id)
                if isinstance(loaded, Success):
                    profile = loaded.value
                    profile.role = role
                    profile.extra_metadata["syncedAt"] = now.isoformat()
                    profile.extra_metadata["syncSource"] = "database"
                    written = await self._identity_provider.update_profile(profile)
                    error = written.error if isinstance(written, Failure) else None
                else:
                    error = loaded.error
            if error is not None:
                return self._fix_failed(principal_id, direction, error.message)
        else:
            role = identity_provider_role
            if role is None or not UserRole.is_valid(role):
                return self._fix_failed(
                    principal_id, direction, f"Identity provider role is not valid: {role}"
                )
            try:
                await self._principals.update_role(
                    principal_id, role=role, source="verifier", synced_at=now
                )
            except SQLAlchemyError as e:
                return self._fix_failed(
                    principal_id, direction, f"Database update failed: {type(e).__name__}"
                )

        await self._permissions.clear_user_permission_cache(principal_id)
        audit_result = await self._audit.record(
            action=AuditAction.ROLE_INCONSISTENCY_FIXED,
            principal_id=principal_id,
            actor=SYSTEM_ACTOR,
            context={
                "direction": direction.value,
                "identity_provider_role": identity_provider_role,
                "database_role": database_role,
                "role": role,
            },
        )
        if isinstance(audit_result, Failure):
            self._logger.warning(
                "permission_audit_failed",
                action=AuditAction.ROLE_INCONSISTENCY_FIXED.value,
                principal_id=principal_id,
                error_message=audit_result.error.message,
            )

        self._logger.info(
            "role_inconsistency_fixed",
            principal_id=principal_id,
            direction=direction.value,
            role=role,
        )
        return RoleFixResult(
            success=True,
            principal_id=principal_id,
            message=f"Role set to {role} ({direction.value})",
            consistent=True,
            role=role,
        )

    def _fix_failed(
        self, principal_id: str, direction: FixDirection, message: str
    ) -> RoleFixResult:
        self._logger.warning(
            "role_inconsistency_fix_failed",
            principal_id=principal_id,
            direction=direction.value,
            error_message=message,
        )
        return RoleFixResult(
            success=False,
            principal_id=principal_id,
            message=message,
            consistent=False,
        )
