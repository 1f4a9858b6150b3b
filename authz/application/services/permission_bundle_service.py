"""Permission bundle service.

Bundles are named permission sets stored in the application database and
applied to a principal's identity provider profile in one write. Every
bundle write validates all permission identifiers first; nothing is stored
if any is unknown.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from authz.application.dtos import BundleApplication
from authz.application.errors import store_failure
from authz.application.services.permission_service import (
    PermissionService,
    validate_permissions,
    validate_principal_id,
)
from authz.core.enums import ErrorCode
from authz.core.errors import ConflictError, DomainError, NotFoundError, ValidationError
from authz.core.result import Failure, Result, Success
from authz.domain.entities import PermissionBundle
from authz.domain.enums import AuditAction, PermissionSource
from authz.domain.permissions.catalog import DEFAULT_BUNDLES, BundleDefinition
from authz.domain.protocols import (
    ClockProtocol,
    IdentityProviderProtocol,
    LoggerProtocol,
    PermissionAuditProtocol,
    PermissionBundleRepository,
)
from authz.domain.value_objects import PermissionProvenance, TemporaryPermission


class PermissionBundleService:
    """Bundle CRUD and application to principals."""

    def __init__(
        self,
        *,
        repository: PermissionBundleRepository,
        identity_provider: IdentityProviderProtocol,
        permission_service: PermissionService,
        audit: PermissionAuditProtocol,
        logger: LoggerProtocol,
        clock: ClockProtocol,
    ) -> None:
        self._repository = repository
        self._identity_provider = identity_provider
        self._permissions = permission_service
        self._audit = audit
        self._logger = logger
        self._clock = clock

    # =========================================================================
    # CRUD
    # =========================================================================

    async def list_bundles(self) -> Result[list[PermissionBundle], DomainError]:
        try:
            return Success(value=await self._repository.list_all())
        except SQLAlchemyError as e:
            self._logger.error("bundle_list_failed", error=e)
            return store_failure(e, "list_bundles")

    async def get_bundle(self, bundle_id: UUID) -> Result[PermissionBundle | None, DomainError]:
        """Get a bundle by id; Success(None) if unknown."""
        try:
            return Success(value=await self._repository.find_by_id(bundle_id))
        except SQLAlchemyError as e:
            self._logger.error("bundle_get_failed", error=e, bundle_id=str(bundle_id))
            return store_failure(e, "get_bundle")

    async def create_bundle(
        self,
        name: str,
        permissions: list[str],
        *,
        description: str | None = None,
    ) -> Result[PermissionBundle, DomainError]:
        """Create a bundle.

        Args:
            name: Unique bundle name.
            permissions: Permission identifiers (all must exist).
            description: Optional description.

        Returns:
            Success(PermissionBundle), Failure(ValidationError) for a blank
            name or unknown permission, Failure(ConflictError) if the name is
            taken.
        """
        invalid = _validate_name(name) or validate_permissions(permissions)
        if invalid is not None:
            return invalid

        bundle = PermissionBundle(
            id=uuid4(),
            name=name.strip(),
            description=description,
            permissions=list(dict.fromkeys(permissions)),
        )
        try:
            if await self._repository.find_by_name(bundle.name) is not None:
                return _name_taken(bundle.name)
            created = await self._repository.save(bundle)
        except IntegrityError:
            return _name_taken(bundle.name)
        except SQLAlchemyError as e:
            self._logger.error("bundle_create_failed", error=e, name=bundle.name)
            return store_failure(e, "create_bundle")

        self._logger.info(
            "bundle_created",
            bundle_id=str(created.id),
            name=created.name,
            permission_count=len(created.permissions),
        )
        return Success(value=created)

    async def update_bundle(
        self,
        bundle_id: UUID,
        *,
        name: str | None = None,
        description: str | None = None,
        permissions: list[str] | None = None,
    ) -> Result[PermissionBundle | None, DomainError]:
        """Update a bundle's name, description or permissions.

        Fields left as None are unchanged. Principals that already received
        the bundle are not touched.

        Returns:
            Success(updated bundle), Success(None) if unknown, or Failure.
        """
        if name is not None:
            invalid = _validate_name(name)
            if invalid is not None:
                return invalid
        if permissions is not None:
            invalid = validate_permissions(permissions)
            if invalid is not None:
                return invalid

        try:
            bundle = await self._repository.find_by_id(bundle_id)
            if bundle is None:
                return Success(value=None)

            if name is not None and name.strip() != bundle.name:
                if await self._repository.find_by_name(name.strip()) is not None:
                    return _name_taken(name.strip())
                bundle.name = name.strip()
            if description is not None:
                bundle.description = description
            if permissions is not None:
                bundle.permissions = list(dict.fromkeys(permissions))

            updated = await self._repository.update(bundle)
        except IntegrityError:
            return _name_taken(name.strip() if name else str(bundle_id))
        except SQLAlchemyError as e:
            self._logger.error("bundle_update_failed", error=e, bundle_id=str(bundle_id))
            return store_failure(e, "update_bundle")

        self._logger.info("bundle_updated", bundle_id=str(bundle_id), name=updated.name)
        return Success(value=updated)

    async def delete_bundle(self, bundle_id: UUID) -> Result[bool, DomainError]:
        """Delete a bundle.

        Returns:
            Success(True) if deleted, Success(False) if unknown.
        """
        try:
            deleted = await self._repository.delete(bundle_id)
        except SQLAlchemyError as e:
            self._logger.error("bundle_delete_failed", error=e, bundle_id=str(bundle_id))
            return store_failure(e, "delete_bundle")

        self._logger.info("bundle_deleted", bundle_id=str(bundle_id), deleted=deleted)
        return Success(value=deleted)

    # =========================================================================
    # Seed catalog
    # =========================================================================

    @staticmethod
    def get_default_bundles() -> tuple[BundleDefinition, ...]:
        return DEFAULT_BUNDLES

    async def initialize_default_bundles(self) -> Result[int, DomainError]:
        """Create any default bundle whose name does not exist yet.

        Returns:
            Success(number of bundles created; 0 on re-run).
        """
        created = 0
        for definition in DEFAULT_BUNDLES:
            try:
                if await self._repository.find_by_name(definition.name) is not None:
                    continue
                await self._repository.save(
                    PermissionBundle(
                        id=uuid4(),
                        name=definition.name,
                        description=definition.description,
                        permissions=list(definition.permissions),
                    )
                )
            except IntegrityError:
                continue
            except SQLAlchemyError as e:
                self._logger.error(
                    "default_bundles_initialization_failed", error=e, name=definition.name
                )
                return store_failure(e, "initialize_default_bundles")
            created += 1

        self._logger.info("default_bundles_initialized", created=created)
        return Success(value=created)

    # =========================================================================
    # Application
    # =========================================================================

    async def apply_bundle_to_user(
        self,
        principal_id: str,
        bundle_id: UUID,
        *,
        applied_by: str,
        temporary: bool = False,
        expires_at: datetime | None = None,
        reason: str | None = None,
    ) -> Result[BundleApplication, DomainError]:
        """Add a bundle's permissions to a principal.

        Only permissions newly added by this call get bundle provenance;
        permissions the principal already held keep theirs. A permission whose
        temporary grant has lapsed is not held: its stale record is replaced. Temporary
        applications also write a temporary-permission record for each added
        permission.

        Args:
            principal_id: Identity provider user id.
            bundle_id: Bundle to apply.
            applied_by: Acting principal.
            temporary: Whether the added permissions expire.
            expires_at: Expiry, required and in the future when temporary.
            reason: Optional reason.

        Returns:
            Success(BundleApplication), Failure(NotFoundError) for an unknown
            bundle or principal, Failure(ValidationError) for bad input.
        """
        invalid = validate_principal_id(principal_id)
        if invalid is not None:
            return invalid

        now = self._clock.now()
        if temporary and (expires_at is None or expires_at <= now):
            return Failure(
                error=ValidationError(
                    code=ErrorCode.INVALID_EXPIRATION,
                    message="Temporary bundles require a future expires_at",
                    field="expires_at",
                )
            )

        bundle_result = await self.get_bundle(bundle_id)
        if isinstance(bundle_result, Failure):
            return bundle_result
        bundle = bundle_result.value
        if bundle is None:
            return Failure(
                error=NotFoundError(
                    code=ErrorCode.BUNDLE_NOT_FOUND,
                    message=f"Bundle not found: {bundle_id}",
                    resource_type="bundle",
                    resource_id=str(bundle_id),
                )
            )

        async with self._permissions.locks.acquire(("profile", principal_id)):
            loaded = await self._identity_provider.get_profile(principal_id)
            match loaded:
                case Failure(error=error) if error.code == ErrorCode.PRINCIPAL_NOT_FOUND:
                    return Failure(
                        error=NotFoundError(
                            code=ErrorCode.PRINCIPAL_NOT_FOUND,
                            message=f"Principal not found: {principal_id}",
                            resource_type="principal",
                            resource_id=principal_id,
                        )
                    )
                case Failure():
                    return loaded
            profile = loaded.value

            # A lapsed temporary record no longer counts as held
            held = {
                p
                for p in dict.fromkeys(bundle.permissions)
                if (
                    profile.temporary_permissions[p].is_active(now)
                    if p in profile.temporary_permissions
                    else p in profile.permissions
                )
            }
            added = [p for p in dict.fromkeys(bundle.permissions) if p not in held]
            already_held = [p for p in dict.fromkeys(bundle.permissions) if p in held]

            for permission in added:
                profile.temporary_permissions.pop(permission, None)
                if permission not in profile.permissions:
                    profile.permissions.append(permission)
                profile.permission_metadata[permission] = PermissionProvenance(
                    source=PermissionSource.BUNDLE,
                    granted_at=now,
                    granted_by=applied_by,
                    reason=reason,
                    bundle_id=bundle.id,
                    bundle_name=bundle.name,
                    expires_at=expires_at if temporary else None,
                )
                if temporary:
                    profile.temporary_permissions[permission] = TemporaryPermission(
                        granted_at=now, expires_at=expires_at, granted_by=applied_by
                    )

            if added:
                written = await self._identity_provider.update_profile(profile)
                if isinstance(written, Failure):
                    self._logger.error(
                        "bundle_apply_failed",
                        principal_id=principal_id,
                        bundle_id=str(bundle.id),
                        error_code=written.error.code.value,
                    )
                    return written

        if added:
            await self._permissions.clear_user_permission_cache(principal_id)
        audit_result = await self._audit.record(
            action=AuditAction.BUNDLE_APPLIED,
            principal_id=principal_id,
            actor=applied_by,
            context={
                "bundle_id": str(bundle.id),
                "bundle_name": bundle.name,
                "added": added,
                "temporary": temporary,
                "expires_at": expires_at.isoformat() if temporary else None,
                "reason": reason,
            },
        )
        if isinstance(audit_result, Failure):
            self._logger.warning(
                "permission_audit_failed",
                action=AuditAction.BUNDLE_APPLIED.value,
                principal_id=principal_id,
                error_message=audit_result.error.message,
            )

        self._logger.info(
            "bundle_applied",
            principal_id=principal_id,
            bundle_name=bundle.name,
            added=added,
            temporary=temporary,
        )
        return Success(
            value=BundleApplication(
                principal_id=principal_id,
                bundle_id=bundle.id,
                bundle_name=bundle.name,
                added=added,
                already_held=already_held,
                temporary=temporary,
                expires_at=expires_at if temporary else None,
            )
        )


def _validate_name(name: str) -> Failure[ValidationError] | None:
    if not name or not name.strip():
        return Failure(
            error=ValidationError(
                code=ErrorCode.INVALID_INPUT,
                message="Bundle name is required",
                field="name",
            )
        )
    return None


def _name_taken(name: str) -> Failure[ConflictError]:
    return Failure(
        error=ConflictError(
            code=ErrorCode.BUNDLE_ALREADY_EXISTS,
            message=f"Bundle already exists: {name}",
            resource_type="bundle",
            conflicting_field="name",
        )
    )
