"""Resource-scoped permission service.

A resource grant binds one permission to one resource instance
(e.g. `listings:edit_own` on listing `lst_42`). Checks first consult the
principal-wide permission set; only when that denies do they query the
grant table.

Concurrency:
    Grants for the same (principal, permission, resource) tuple are
    serialized by a per-tuple lock in-process, and the partial unique index
    on active grants guards across processes. A losing insert is retried
    as an update.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from authz.application.dtos import RevokeResult
from authz.application.errors import store_failure
from authz.application.services.permission_service import (
    PermissionService,
    validate_permissions,
    validate_principal_id,
)
from authz.core.enums import ErrorCode
from authz.core.errors import DomainError, ValidationError
from authz.core.keyed_lock import KeyedLock
from authz.core.result import Failure, Result, Success
from authz.domain.entities import ResourcePermissionGrant
from authz.domain.enums import AuditAction, ResourceScope
from authz.domain.protocols import (
    ClockProtocol,
    LoggerProtocol,
    PermissionAuditProtocol,
    ResourcePermissionRepository,
)
from authz.domain.value_objects import FullProfile, IdOnly, PrincipalRef


class ResourcePermissionService:
    """Grant, revoke and check resource-scoped permissions."""

    def __init__(
        self,
        *,
        repository: ResourcePermissionRepository,
        permission_service: PermissionService,
        audit: PermissionAuditProtocol,
        logger: LoggerProtocol,
        clock: ClockProtocol,
        locks: KeyedLock | None = None,
    ) -> None:
        self._repository = repository
        self._permissions = permission_service
        self._audit = audit
        self._logger = logger
        self._clock = clock
        self._locks = locks or KeyedLock()

    async def grant_resource_permission(
        self,
        principal_id: str,
        permission: str,
        resource_type: str,
        resource_id: str,
        *,
        granted_by: str,
        reason: str | None = None,
        expires_at: datetime | None = None,
    ) -> Result[ResourcePermissionGrant, DomainError]:
        """Grant a permission on one resource (idempotent per tuple).

        A second grant for the same tuple updates `reason` and `granted_by`
        on the existing row; `expires_at` is replaced only when supplied. An
        existing grant that has already expired is renewed as a fresh grant.

        Args:
            principal_id: Identity provider user id of the grantee.
            permission: Permission identifier.
            resource_type: Resource kind.
            resource_id: Resource instance id.
            granted_by: Acting principal.
            reason: Optional reason.
            expires_at: Optional expiry (must be in the future).

        Returns:
            Success(the single active grant) or Failure.
        """
        invalid = (
            validate_principal_id(principal_id)
            or validate_permissions([permission], field="permission")
            or _validate_resource(resource_type, resource_id)
        )
        if invalid is not None:
            return invalid

        now = self._clock.now()
        if expires_at is not None and expires_at <= now:
            return Failure(
                error=ValidationError(
                    code=ErrorCode.INVALID_EXPIRATION,
                    message="Expiration must be in the future",
                    field="expires_at",
                )
            )

        key = ("resource", principal_id, permission, resource_type, resource_id)
        try:
            async with self._locks.acquire(key):
                existing = await self._repository.find_active(
                    principal_id, permission, resource_type, resource_id
                )
                if existing is None:
                    try:
                        grant = await self._repository.add(
                            ResourcePermissionGrant(
                                id=uuid4(),
                                principal_id=principal_id,
                                permission=permission,
                                resource_type=resource_type,
                                resource_id=resource_id,
                                active=True,
                                granted_at=now,
                                granted_by=granted_by,
                                reason=reason,
                                expires_at=expires_at,
                            )
                        )
                        action = AuditAction.RESOURCE_PERMISSION_GRANTED
                    except IntegrityError:
                        # Another process inserted the tuple first
                        existing = await self._repository.find_active(
                            principal_id, permission, resource_type, resource_id
                        )
                        if existing is None:
                            raise

                if existing is not None:
                    if existing.is_expired(now):
                        existing.granted_at = now
                        existing.expires_at = expires_at
                    elif expires_at is not None:
                        existing.expires_at = expires_at
                    existing.reason = reason
                    existing.granted_by = granted_by
                    grant = await self._repository.update(existing)
                    action = AuditAction.RESOURCE_PERMISSION_UPDATED
        except SQLAlchemyError as e:
            self._logger.error(
                "resource_permission_grant_failed",
                error=e,
                principal_id=principal_id,
                permission=permission,
                resource_type=resource_type,
                resource_id=resource_id,
            )
            return store_failure(e, "grant_resource_permission")

        await self._permissions.clear_user_permission_cache(principal_id)
        await self._record(
            action,
            principal_id,
            granted_by,
            {
                "permission": permission,
                "resource_type": resource_type,
                "resource_id": resource_id,
                "reason": reason,
                "expires_at": grant.expires_at.isoformat() if grant.expires_at else None,
            },
        )
        self._logger.info(
            "resource_permission_granted",
            principal_id=principal_id,
            permission=permission,
            resource_type=resource_type,
            resource_id=resource_id,
            updated=action == AuditAction.RESOURCE_PERMISSION_UPDATED,
        )
        return Success(value=grant)

    async def revoke_resource_permission(
        self,
        principal_id: str,
        permission: str,
        resource_type: str,
        resource_id: str,
        *,
        revoked_by: str,
        reason: str | None = None,
    ) -> Result[RevokeResult, DomainError]:
        """Revoke a resource grant.

        Revoking a tuple with no active grant returns a zero count.

        Returns:
            Success(RevokeResult) or Failure.
        """
        invalid = validate_principal_id(principal_id) or _validate_resource(
            resource_type, resource_id
        )
        if invalid is not None:
            return invalid

        key = ("resource", principal_id, permission, resource_type, resource_id)
        try:
            async with self._locks.acquire(key):
                revoked = await self._repository.revoke(
                    principal_id,
                    permission,
                    resource_type,
                    resource_id,
                    revoked_at=self._clock.now(),
                    revoked_by=revoked_by,
                    reason=reason,
                )
        except SQLAlchemyError as e:
            self._logger.error(
                "resource_permission_revoke_failed",
                error=e,
                principal_id=principal_id,
                permission=permission,
            )
            return store_failure(e, "revoke_resource_permission")

        if revoked:
            await self._permissions.clear_user_permission_cache(principal_id)
            await self._record(
                AuditAction.RESOURCE_PERMISSION_REVOKED,
                principal_id,
                revoked_by,
                {
                    "permission": permission,
                    "resource_type": resource_type,
                    "resource_id": resource_id,
                    "reason": reason,
                },
            )
        self._logger.info(
            "resource_permission_revoked",
            principal_id=principal_id,
            permission=permission,
            resource_type=resource_type,
            resource_id=resource_id,
            revoked_count=revoked,
        )
        return Success(value=RevokeResult(revoked_count=revoked))

    async def has_resource_permission(
        self,
        ref: PrincipalRef,
        permission: str,
        resource_type: str,
        resource_id: str,
    ) -> bool:
        """Check a permission on one resource (fails closed).

        Returns:
            bool: True if held role-wide or through an active, unexpired
            resource grant.
        """
        if await self._permissions.has_permission(ref, permission):
            return True

        principal_id = self._principal_id(ref)
        if principal_id is None:
            return False

        try:
            return await self._repository.has_effective_grant(
                principal_id, permission, resource_type, resource_id, self._clock.now()
            )
        except Exception as e:
            self._logger.warning(
                "resource_permission_check_failed_closed",
                error=e,
                principal_id=principal_id,
                permission=permission,
                resource_type=resource_type,
                resource_id=resource_id,
            )
            return False

    async def list_resources_with_permission(
        self, ref: PrincipalRef, permission: str, resource_type: str
    ) -> Result[set[str] | ResourceScope, DomainError]:
        """List resource ids a principal may act on.

        Returns:
            Success(ResourceScope.ALL) when the permission is held role-wide,
            otherwise Success(set of resource ids; empty means none).
        """
        if await self._permissions.has_permission(ref, permission):
            return Success(value=ResourceScope.ALL)

        principal_id = self._principal_id(ref)
        if principal_id is None:
            return Success(value=set())

        try:
            resource_ids = await self._repository.list_effective_resource_ids(
                principal_id, permission, resource_type, self._clock.now()
            )
        except SQLAlchemyError as e:
            self._logger.error(
                "resource_permission_list_failed", error=e, principal_id=principal_id
            )
            return store_failure(e, "list_resources_with_permission")
        return Success(value=resource_ids)

    async def list_principals_with_resource_permission(
        self, permission: str, resource_type: str, resource_id: str
    ) -> Result[list[str], DomainError]:
        """Distinct principals holding an effective grant on a resource.

        Role-wide holders are not included.
        """
        try:
            principal_ids = await self._repository.list_effective_principal_ids(
                permission, resource_type, resource_id, self._clock.now()
            )
        except SQLAlchemyError as e:
            self._logger.error(
                "resource_permission_holders_failed",
                error=e,
                permission=permission,
                resource_type=resource_type,
                resource_id=resource_id,
            )
            return store_failure(e, "list_principals_with_resource_permission")
        return Success(value=principal_ids)

    @staticmethod
    def _principal_id(ref: PrincipalRef) -> str | None:
        match ref:
            case FullProfile(profile=profile):
                return profile.id or None
            case IdOnly(principal_id=principal_id):
                return principal_id or None

    async def _record(
        self, action: AuditAction, principal_id: str, actor: str | None, context: dict
    ) -> None:
        result = await self._audit.record(
            action=action, principal_id=principal_id, actor=actor, context=context
        )
        if isinstance(result, Failure):
            self._logger.warning(
                "permission_audit_failed",
                action=action.value,
                principal_id=principal_id,
                error_message=result.error.message,
            )


def _validate_resource(resource_type: str, resource_id: str) -> Failure[ValidationError] | None:
    if not resource_type or not resource_id:
        return Failure(
            error=ValidationError(
                code=ErrorCode.INVALID_INPUT,
                message="resource_type and resource_id are required",
                field="resource_type" if not resource_type else "resource_id",
            )
        )
    return None
