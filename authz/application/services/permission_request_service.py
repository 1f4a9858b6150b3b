"""Permission request service: self-service access requests and their review.

A principal asks for one permission (optionally scoped to a resource) or a
bundle, with a justification and an optional expiry. A reviewer approves or
denies it; the requester may cancel it while it is pending.

Approval:
    Approving routes the request through the normal grant paths, so the
    grant is validated, cached state is invalidated and the grant itself is
    audited exactly as a direct grant would be:

    - bundle request          -> PermissionBundleService.apply_bundle_to_user
    - resource-scoped request -> ResourcePermissionService.grant_resource_permission
    - temporary request       -> PermissionService.grant_temporary_permission
    - permanent request       -> PermissionService.grant_permissions

    If the grant fails the request stays pending. Grants are idempotent, so
    an approval that granted but failed to store its status can be retried.

Usage:
    created = await requests.create_request(
        "user_1",
        permission="listings:approve",
        justification="Covering moderation this week",
        expires_at=now + timedelta(days=7),
    )
    await requests.approve_request(created.value.id, reviewed_by="user_admin")
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError

from authz.application.dtos import PermissionRequestPage
from authz.application.errors import store_failure
from authz.application.services.permission_bundle_service import PermissionBundleService
from authz.application.services.permission_service import (
    PermissionService,
    validate_permissions,
    validate_principal_id,
)
from authz.application.services.resource_permission_service import (
    ResourcePermissionService,
)
from authz.core.constants import (
    APPROVAL_REASON_TEMPLATE,
    PERMISSION_REQUEST_JUSTIFICATION_MAX_LENGTH,
    PERMISSION_REQUEST_JUSTIFICATION_MIN_LENGTH,
    PERMISSION_REQUEST_MAX_PAGE_SIZE,
    PERMISSION_REQUEST_PAGE_SIZE,
)
from authz.core.enums import ErrorCode
from authz.core.errors import (
    AuthorizationError,
    ConflictError,
    DomainError,
    NotFoundError,
    ValidationError,
)
from authz.core.keyed_lock import KeyedLock
from authz.core.result import Failure, Result, Success
from authz.domain.entities import PermissionRequest
from authz.domain.enums import AuditAction, PermissionRequestStatus
from authz.domain.protocols import (
    ClockProtocol,
    LoggerProtocol,
    PermissionAuditProtocol,
    PermissionRequestRepository,
)
from authz.domain.value_objects import IdOnly


class PermissionRequestService:
    """Create, list and review permission requests.

    Attributes:
        _repository: Request persistence.
        _permissions: Principal-wide grants and resolution.
        _bundles: Bundle application.
        _resources: Resource-scoped grants.
        _locks: Per-request locks serializing review decisions.
    """

    def __init__(
        self,
        *,
        repository: PermissionRequestRepository,
        permission_service: PermissionService,
        bundle_service: PermissionBundleService,
        resource_service: ResourcePermissionService,
        audit: PermissionAuditProtocol,
        logger: LoggerProtocol,
        clock: ClockProtocol,
        locks: KeyedLock | None = None,
    ) -> None:
        self._repository = repository
        self._permissions = permission_service
        self._bundles = bundle_service
        self._resources = resource_service
        self._audit = audit
        self._logger = logger
        self._clock = clock
        self._locks = locks or KeyedLock()

    # =========================================================================
    # Requester operations
    # =========================================================================

    async def create_request(
        self,
        principal_id: str,
        *,
        justification: str,
        permission: str | None = None,
        bundle_id: UUID | None = None,
        resource_type: str | None = None,
        resource_id: str | None = None,
        expires_at: datetime | None = None,
    ) -> Result[PermissionRequest, DomainError]:
        """Submit a request for a permission or a bundle.

        Args:
            principal_id: Identity provider user id of the requester.
            justification: Why the access is needed (trimmed, bounded length).
            permission: Requested permission (exclusive with bundle_id).
            bundle_id: Requested bundle (exclusive with permission).
            resource_type: Resource kind, for a resource-scoped permission.
            resource_id: Resource instance, for a resource-scoped permission.
            expires_at: Requested expiry; None asks for a permanent grant.

        Returns:
            Success(pending PermissionRequest), Failure(ValidationError) for
            bad input, Failure(NotFoundError) for an unknown principal or
            bundle, Failure(ConflictError) if the access is already held or
            an identical request is pending.
        """
        justification = (justification or "").strip()
        invalid = (
            validate_principal_id(principal_id)
            or _validate_target(permission, bundle_id, resource_type, resource_id)
            or _validate_justification(justification)
        )
        if invalid is not None:
            return invalid

        now = self._clock.now()
        if expires_at is not None and expires_at <= now:
            return Failure(
                error=ValidationError(
                    code=ErrorCode.INVALID_EXPIRATION,
                    message="Requested expiration must be in the future",
                    field="expires_at",
                )
            )

        held = await self._already_held(
            principal_id, permission, bundle_id, resource_type, resource_id
        )
        if isinstance(held, Failure):
            return held
        if held.value:
            return Failure(
                error=ConflictError(
                    code=ErrorCode.PERMISSION_ALREADY_HELD,
                    message=f"{principal_id} already holds the requested access",
                    resource_type="permission_request",
                    conflicting_field="bundle_id" if bundle_id else "permission",
                )
            )

        request = PermissionRequest(
            id=uuid4(),
            principal_id=principal_id,
            justification=justification,
            status=PermissionRequestStatus.PENDING,
            requested_at=now,
            permission=permission,
            bundle_id=bundle_id,
            resource_type=resource_type,
            resource_id=resource_id,
            expires_at=expires_at,
        )
        try:
            async with self._locks.acquire(("request-target", principal_id)):
                if await self._repository.has_pending(
                    principal_id,
                    permission=permission,
                    bundle_id=bundle_id,
                    resource_type=resource_type,
                    resource_id=resource_id,
                ):
                    return Failure(
                        error=ConflictError(
                            code=ErrorCode.RESOURCE_CONFLICT,
                            message="An identical request is already pending",
                            resource_type="permission_request",
                        )
                    )
                request = await self._repository.add(request)
        except SQLAlchemyError as e:
            self._logger.error(
                "permission_request_create_failed", error=e, principal_id=principal_id
            )
            return store_failure(e, "create_permission_request")

        await self._record(
            AuditAction.PERMISSION_REQUESTED, request, principal_id, {"justification": justification}
        )
        self._logger.info(
            "permission_request_created",
            request_id=str(request.id),
            principal_id=principal_id,
            permission=permission,
            bundle_id=str(bundle_id) if bundle_id else None,
            temporary=request.is_temporary,
        )
        return Success(value=request)

    async def cancel_request(
        self, request_id: UUID, *, canceled_by: str
    ) -> Result[PermissionRequest, DomainError]:
        """Withdraw a pending request (requester only).

        Returns:
            Success(canceled request), Failure(AuthorizationError) if the
            caller is not the requester, Failure(ConflictError) if the
            request is no longer pending.
        """
        return await self._close(
            request_id,
            PermissionRequestStatus.CANCELED,
            actor=canceled_by,
            notes=None,
            requester_only=True,
        )

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_request(self, request_id: UUID) -> Result[PermissionRequest, DomainError]:
        """Get one request.

        Returns:
            Success(PermissionRequest) or Failure(NotFoundError).
        """
        try:
            request = await self._repository.find_by_id(request_id)
        except SQLAlchemyError as e:
            self._logger.error("permission_request_get_failed", error=e, request_id=str(request_id))
            return store_failure(e, "get_permission_request")
        if request is None:
            return _request_not_found(request_id)
        return Success(value=request)

    async def list_requests(
        self,
        *,
        status: PermissionRequestStatus | str | None = None,
        principal_id: str | None = None,
        limit: int = PERMISSION_REQUEST_PAGE_SIZE,
        offset: int = 0,
    ) -> Result[PermissionRequestPage, DomainError]:
        """List requests newest first, optionally filtered.

        Args:
            status: Only requests in this state.
            principal_id: Only this requester's requests.
            limit: Page size (1 to PERMISSION_REQUEST_MAX_PAGE_SIZE).
            offset: Requests to skip.

        Returns:
            Success(PermissionRequestPage) or Failure.
        """
        if status is not None and not isinstance(status, PermissionRequestStatus):
            try:
                status = PermissionRequestStatus(status)
            except ValueError:
                return Failure(
                    error=ValidationError(
                        code=ErrorCode.INVALID_INPUT,
                        message=f"Unknown request status: {status}",
                        field="status",
                    )
                )
        if not 1 <= limit <= PERMISSION_REQUEST_MAX_PAGE_SIZE or offset < 0:
            return Failure(
                error=ValidationError(
                    code=ErrorCode.INVALID_INPUT,
                    message=(
                        f"limit must be between 1 and {PERMISSION_REQUEST_MAX_PAGE_SIZE} "
                        "and offset must not be negative"
                    ),
                    field="limit" if offset >= 0 else "offset",
                )
            )

        try:
            items = await self._repository.list_requests(
                status=status, principal_id=principal_id, limit=limit, offset=offset
            )
            total = await self._repository.count_requests(status=status, principal_id=principal_id)
        except SQLAlchemyError as e:
            self._logger.error("permission_request_list_failed", error=e)
            return store_failure(e, "list_permission_requests")
        return Success(
            value=PermissionRequestPage(items=items, total=total, limit=limit, offset=offset)
        )

    # =========================================================================
    # Review
    # =========================================================================

    async def approve_request(
        self, request_id: UUID, *, reviewed_by: str, notes: str | None = None
    ) -> Result[PermissionRequest, DomainError]:
        """Approve a pending request and grant what it asks for.

        A temporary request whose expiry has already passed is closed as
        EXPIRED instead, and the call fails with INVALID_EXPIRATION.

        Returns:
            Success(approved request), Failure(ConflictError) if not pending,
            or the grant path's Failure (the request stays pending).
        """
        async with self._locks.acquire(("request", request_id)):
            loaded = await self._load_pending(request_id)
            if isinstance(loaded, Failure):
                return loaded
            request = loaded.value

            now = self._clock.now()
            if request.is_temporary and request.expires_at <= now:
                request.close(
                    PermissionRequestStatus.EXPIRED,
                    reviewed_by=reviewed_by,
                    reviewed_at=now,
                    notes=notes,
                )
                stored = await self._store(request)
                if isinstance(stored, Failure):
                    return stored
                self._logger.info("permission_request_expired", request_id=str(request_id))
                return Failure(
                    error=ValidationError(
                        code=ErrorCode.INVALID_EXPIRATION,
                        message="The requested expiration has already passed",
                        field="expires_at",
                    )
                )

            granted = await self._grant(request, reviewed_by)
            if isinstance(granted, Failure):
                self._logger.warning(
                    "permission_request_approval_failed",
                    request_id=str(request_id),
                    error_code=granted.error.code.value,
                    error_message=granted.error.message,
                )
                return granted

            request.close(
                PermissionRequestStatus.APPROVED,
                reviewed_by=reviewed_by,
                reviewed_at=now,
                notes=notes,
            )
            stored = await self._store(request)
            if isinstance(stored, Failure):
                return stored

        await self._record(
            AuditAction.PERMISSION_REQUEST_APPROVED, request, reviewed_by, {"notes": notes}
        )
        self._logger.info(
            "permission_request_approved",
            request_id=str(request_id),
            principal_id=request.principal_id,
            reviewed_by=reviewed_by,
        )
        return stored

    async def deny_request(
        self, request_id: UUID, *, reviewed_by: str, notes: str | None = None
    ) -> Result[PermissionRequest, DomainError]:
        """Deny a pending request.

        Returns:
            Success(denied request) or Failure(ConflictError) if not pending.
        """
        return await self._close(
            request_id, PermissionRequestStatus.DENIED, actor=reviewed_by, notes=notes
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _already_held(
        self,
        principal_id: str,
        permission: str | None,
        bundle_id: UUID | None,
        resource_type: str | None,
        resource_id: str | None,
    ) -> Result[bool, DomainError]:
        ref = IdOnly(principal_id=principal_id)
        effective = await self._permissions.get_user_permissions(ref)
        if isinstance(effective, Failure):
            return effective

        if bundle_id is not None:
            bundle = await self._bundles.get_bundle(bundle_id)
            if isinstance(bundle, Failure):
                return bundle
            if bundle.value is None:
                return Failure(
                    error=NotFoundError(
                        code=ErrorCode.BUNDLE_NOT_FOUND,
                        message=f"Bundle not found: {bundle_id}",
                        resource_type="bundle",
                        resource_id=str(bundle_id),
                    )
                )
            return Success(value=all(p in effective.value for p in bundle.value.permissions))

        if permission in effective.value:
            return Success(value=True)
        if resource_type is not None:
            return Success(
                value=await self._resources.has_resource_permission(
                    ref, permission, resource_type, resource_id
                )
            )
        return Success(value=False)

    async def _grant(self, request: PermissionRequest, reviewed_by: str) -> Result[object, DomainError]:
        reason = APPROVAL_REASON_TEMPLATE.format(request_id=request.id)
        if request.bundle_id is not None:
            return await self._bundles.apply_bundle_to_user(
                request.principal_id,
                request.bundle_id,
                applied_by=reviewed_by,
                temporary=request.is_temporary,
                expires_at=request.expires_at,
                reason=reason,
            )
        if request.is_resource_scoped:
            return await self._resources.grant_resource_permission(
                request.principal_id,
                request.permission,
                request.resource_type,
                request.resource_id,
                granted_by=reviewed_by,
                reason=reason,
                expires_at=request.expires_at,
            )
        if request.is_temporary:
            return await self._permissions.grant_temporary_permission(
                request.principal_id,
                request.permission,
                granted_by=reviewed_by,
                expires_at=request.expires_at,
                reason=reason,
            )
        return await self._permissions.grant_permissions(
            request.principal_id, [request.permission], granted_by=reviewed_by, reason=reason
        )

    async def _close(
        self,
        request_id: UUID,
        status: PermissionRequestStatus,
        *,
        actor: str,
        notes: str | None,
        requester_only: bool = False,
    ) -> Result[PermissionRequest, DomainError]:
        async with self._locks.acquire(("request", request_id)):
            loaded = await self._load_pending(request_id)
            if isinstance(loaded, Failure):
                return loaded
            request = loaded.value

            if requester_only and actor != request.principal_id:
                return Failure(
                    error=AuthorizationError(
                        code=ErrorCode.PERMISSION_DENIED,
                        message="Only the requester can cancel a request",
                    )
                )

            request.close(status, reviewed_by=actor, reviewed_at=self._clock.now(), notes=notes)
            stored = await self._store(request)
            if isinstance(stored, Failure):
                return stored

        action = (
            AuditAction.PERMISSION_REQUEST_CANCELED
            if status == PermissionRequestStatus.CANCELED
            else AuditAction.PERMISSION_REQUEST_DENIED
        )
        await self._record(action, request, actor, {"notes": notes})
        self._logger.info(
            "permission_request_closed",
            request_id=str(request_id),
            status=status.value,
            actor=actor,
        )
        return stored

    async def _load_pending(self, request_id: UUID) -> Result[PermissionRequest, DomainError]:
        loaded = await self.get_request(request_id)
        if isinstance(loaded, Success) and not loaded.value.is_pending:
            return Failure(
                error=ConflictError(
                    code=ErrorCode.PERMISSION_REQUEST_NOT_PENDING,
                    message=f"Request {request_id} is already {loaded.value.status.value}",
                    resource_type="permission_request",
                    conflicting_field="status",
                )
            )
        return loaded

    async def _store(self, request: PermissionRequest) -> Result[PermissionRequest, DomainError]:
        try:
            return Success(value=await self._repository.update(request))
        except SQLAlchemyError as e:
            self._logger.error(
                "permission_request_update_failed", error=e, request_id=str(request.id)
            )
            return store_failure(e, "update_permission_request")

    async def _record(
        self, action: AuditAction, request: PermissionRequest, actor: str, context: dict
    ) -> None:
        result = await self._audit.record(
            action=action,
            principal_id=request.principal_id,
            actor=actor,
            context={
                "request_id": str(request.id),
                "permission": request.permission,
                "bundle_id": str(request.bundle_id) if request.bundle_id else None,
                "resource_type": request.resource_type,
                "resource_id": request.resource_id,
                "expires_at": request.expires_at.isoformat() if request.expires_at else None,
                **context,
            },
        )
        if isinstance(result, Failure):
            self._logger.warning(
                "permission_audit_failed",
                action=action.value,
                principal_id=request.principal_id,
                error_message=result.error.message,
            )


def _validate_target(
    permission: str | None,
    bundle_id: UUID | None,
    resource_type: str | None,
    resource_id: str | None,
) -> Failure[ValidationError] | None:
    if (permission is None) == (bundle_id is None):
        return Failure(
            error=ValidationError(
                code=ErrorCode.INVALID_INPUT,
                message="Request exactly one of permission or bundle_id",
                field="permission",
            )
        )
    if (resource_type is None) != (resource_id is None):
        return Failure(
            error=ValidationError(
                code=ErrorCode.INVALID_INPUT,
                message="resource_type and resource_id must be given together",
                field="resource_type" if resource_type is None else "resource_id",
            )
        )
    if bundle_id is not None:
        if resource_type is not None:
            return Failure(
                error=ValidationError(
                    code=ErrorCode.INVALID_INPUT,
                    message="Bundle requests cannot be scoped to a resource",
                    field="resource_type",
                )
            )
        return None
    return validate_permissions([permission], field="permission")


def _validate_justification(justification: str) -> Failure[ValidationError] | None:
    if not (
        PERMISSION_REQUEST_JUSTIFICATION_MIN_LENGTH
        <= len(justification)
        <= PERMISSION_REQUEST_JUSTIFICATION_MAX_LENGTH
    ):
        return Failure(
            error=ValidationError(
                code=ErrorCode.VALIDATION_FAILED,
                message=(
                    f"Justification must be {PERMISSION_REQUEST_JUSTIFICATION_MIN_LENGTH}"
                    f" to {PERMISSION_REQUEST_JUSTIFICATION_MAX_LENGTH} characters"
                ),
                field="justification",
            )
        )
    return None


def _request_not_found(request_id: UUID) -> Failure[NotFoundError]:
    return Failure(
        error=NotFoundError(
            code=ErrorCode.PERMISSION_REQUEST_NOT_FOUND,
            message=f"Permission request not found: {request_id}",
            resource_type="permission_request",
            resource_id=str(request_id),
        )
    )
