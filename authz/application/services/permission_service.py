"""Permission service: cached resolution and principal-wide grants.

Reads:
    Principal references are resolved once into a PrincipalProfile, passed
    to the pure resolver and memoized through the permission cache. Checks
    fail CLOSED: any store failure logs and denies.

Writes:
    Explicit and temporary grants live in the identity provider profile.
    Every write is a locked read-merge-write of the full metadata blob,
    followed by cache invalidation and an audit record.

Role changes:
    The database is the system of record for the role; the identity provider
    profile mirrors it. `change_user_role` writes the database first, then the
    mirror, and reports when the mirror lags.

Usage:
    service = PermissionService(
        identity_provider=provider,
        principal_repository=principals,
        cache=cache,
        audit=audit,
        logger=logger,
        clock=clock,
    )

    if await service.has_permission(IdOnly(principal_id="user_1"), "listings:approve"):
        ...
"""

from collections.abc import Iterable
from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError

from authz.application.dtos import RoleChangeResult
from authz.application.errors import store_failure
from authz.core.enums import ErrorCode
from authz.core.errors import ConflictError, DomainError, NotFoundError, ValidationError
from authz.core.keyed_lock import KeyedLock
from authz.core.result import Failure, Result, Success
from authz.domain.entities import PrincipalProfile
from authz.domain.enums import AuditAction, PermissionDomain, PermissionSource, UserRole
from authz.domain.permissions import catalog, resolver
from authz.domain.protocols import (
    ClockProtocol,
    IdentityProviderProtocol,
    LoggerProtocol,
    PermissionAuditProtocol,
    PermissionCacheProtocol,
    PermissionCacheStats,
    PrincipalRepository,
    ResolvedPermissions,
)
from authz.domain.protocols.permission_cache_protocol import CacheTarget
from authz.domain.value_objects import (
    FullProfile,
    IdOnly,
    PermissionProvenance,
    PrincipalRef,
    TemporaryPermission,
)


def validate_principal_id(principal_id: str, field: str = "principal_id") -> Failure[ValidationError] | None:
    """Reject blank principal ids."""
    if not principal_id or not principal_id.strip():
        return Failure(
            error=ValidationError(
                code=ErrorCode.INVALID_PRINCIPAL,
                message="Principal id is required",
                field=field,
            )
        )
    return None


def validate_permissions(
    permissions: Iterable[str], field: str = "permissions"
) -> Failure[ValidationError] | None:
    """Reject an empty list or any identifier missing from the catalog.

    The whole input is rejected if any one identifier is unknown.
    """
    permissions = list(permissions)
    if not permissions:
        return Failure(
            error=ValidationError(
                code=ErrorCode.INVALID_INPUT,
                message="At least one permission is required",
                field=field,
            )
        )
    unknown = catalog.invalid_permissions(permissions)
    if unknown:
        return Failure(
            error=ValidationError(
                code=ErrorCode.INVALID_PERMISSION,
                message=f"Unknown permissions: {', '.join(unknown)}",
                field=field,
                details={"invalid_permissions": unknown},
            )
        )
    return None


class PermissionService:
    """Resolution, checks and principal-wide grants.

    Attributes:
        _identity_provider: Owner of profile metadata.
        _principals: Database role mirror (system of record for roles).
        _cache: Permission cache (explicitly constructed, injected).
        _audit: Permission audit trail.
        _logger: Structured logger.
        _clock: Time source for expiry.
        _locks: Per-principal locks serializing profile read-modify-write.
    """

    def __init__(
        self,
        *,
        identity_provider: IdentityProviderProtocol,
        principal_repository: PrincipalRepository,
        cache: PermissionCacheProtocol,
        audit: PermissionAuditProtocol,
        logger: LoggerProtocol,
        clock: ClockProtocol,
        locks: KeyedLock | None = None,
    ) -> None:
        self._identity_provider = identity_provider
        self._principals = principal_repository
        self._cache = cache
        self._audit = audit
        self._logger = logger
        self._clock = clock
        self._locks = locks or KeyedLock()

    @property
    def locks(self) -> KeyedLock:
        """Profile locks, shared with services that write the same profiles."""
        return self._locks

    # =========================================================================
    # Resolution
    # =========================================================================

    async def resolve_principal(
        self, ref: PrincipalRef
    ) -> Result[PrincipalProfile, DomainError]:
        """Resolve a principal reference into a canonical profile.

        Args:
            ref: FullProfile (used as-is) or IdOnly (fetched from the
                identity provider).

        Returns:
            Success(PrincipalProfile), Failure(ValidationError) for a blank id,
            or the identity provider's Failure.
        """
        match ref:
            case FullProfile(profile=profile):
                return Success(value=profile)
            case IdOnly(principal_id=principal_id) if principal_id:
                return await self._identity_provider.get_profile(principal_id)
            case _:
                return Failure(
                    error=ValidationError(
                        code=ErrorCode.INVALID_PRINCIPAL,
                        message="Principal reference has no id",
                        field="principal",
                    )
                )

    async def get_user_permissions(
        self, ref: PrincipalRef
    ) -> Result[frozenset[str], DomainError]:
        """Get the effective permission set.

        Principals with neither an id nor an email are resolved live on every
        call.

        Args:
            ref: Principal reference.

        Returns:
            Success(frozenset[str]) or the failure that prevented resolution.
        """

        async def compute() -> Result[ResolvedPermissions, DomainError]:
            resolved = await self.resolve_principal(ref)
            match resolved:
                case Success(value=profile):
                    now = self._clock.now()
                    return Success(
                        value=ResolvedPermissions(
                            permissions=resolver.resolve_permissions(profile, now),
                            valid_until=resolver.next_expiry(profile, now),
                        )
                    )
                case Failure():
                    return resolved

        return await self._cache.get_permissions(ref.cache_key, compute)

    async def has_permission(self, ref: PrincipalRef, permission: str) -> bool:
        """Check one permission (fails closed).

        Args:
            ref: Principal reference.
            permission: Permission identifier.

        Returns:
            bool: True if held; False if not held or resolution failed.

        Example:
            >>> await service.has_permission(IdOnly(principal_id="user_1"), "listings:create")
            True
        """

        async def compute() -> Result[bool, DomainError]:
            resolved = await self.get_user_permissions(ref)
            match resolved:
                case Success(value=permissions):
                    return Success(value=permission in permissions)
                case Failure():
                    return resolved

        try:
            result = await self._cache.get_permission_result(ref.cache_key, permission, compute)
        except Exception as e:
            self._logger.error(
                "permission_check_error", error=e, principal=_describe(ref), permission=permission
            )
            return False

        match result:
            case Success(value=allowed):
                return allowed
            case Failure(error=error):
                self._deny_closed(ref, error, permission=permission)
                return False

    async def has_all_permissions(self, ref: PrincipalRef, permissions: Iterable[str]) -> bool:
        """Check every permission is held (empty input returns False, fails closed)."""
        required = list(permissions)
        if not required:
            return False
        effective = await self._effective_or_none(ref, permissions=required)
        return effective is not None and all(p in effective for p in required)

    async def has_any_permission(self, ref: PrincipalRef, permissions: Iterable[str]) -> bool:
        """Check at least one permission is held (empty input returns False, fails closed)."""
        candidates = list(permissions)
        if not candidates:
            return False
        effective = await self._effective_or_none(ref, permissions=candidates)
        return effective is not None and any(p in effective for p in candidates)

    async def get_domain_permissions(
        self, ref: PrincipalRef, domain: PermissionDomain | str
    ) -> dict[str, bool]:
        """Map every action in a domain to whether it is held.

        Keys are both the upper-case action name and the lowercase action.
        An unknown domain returns an empty mapping. On store failure every
        action maps to False.

        Args:
            ref: Principal reference.
            domain: Domain enum or value (e.g., "listings").

        Returns:
            dict[str, bool]: e.g. {"VIEW_OWN": True, "view_own": True, ...}.
        """
        domain_value = domain.value if isinstance(domain, PermissionDomain) else domain
        if not PermissionDomain.is_valid(domain_value):
            return {}

        async def compute() -> Result[dict[str, bool], DomainError]:
            resolved = await self.get_user_permissions(ref)
            match resolved:
                case Success(value=permissions):
                    return Success(value=resolver.domain_permission_map(permissions, domain_value))
                case Failure():
                    return resolved

        try:
            result = await self._cache.get_domain_permissions(ref.cache_key, domain_value, compute)
        except Exception as e:
            self._logger.error(
                "domain_permission_check_error", error=e, principal=_describe(ref), domain=domain_value
            )
            return resolver.domain_permission_map(frozenset(), domain_value)

        match result:
            case Success(value=mapping):
                return mapping
            case Failure(error=error):
                self._deny_closed(ref, error, domain=domain_value)
                return resolver.domain_permission_map(frozenset(), domain_value)

    async def _effective_or_none(
        self, ref: PrincipalRef, *, permissions: list[str]
    ) -> frozenset[str] | None:
        try:
            result = await self.get_user_permissions(ref)
        except Exception as e:
            self._logger.error(
                "permission_check_error", error=e, principal=_describe(ref), permissions=permissions
            )
            return None

        match result:
            case Success(value=effective):
                return effective
            case Failure(error=error):
                self._deny_closed(ref, error, permissions=permissions)
                return None

    def _deny_closed(self, ref: PrincipalRef, error: DomainError, **context: object) -> None:
        self._logger.warning(
            "permission_check_failed_closed",
            principal=_describe(ref),
            error_code=error.code.value,
            error_message=error.message,
            **context,
        )

    # =========================================================================
    # Cache administration
    # =========================================================================

    async def clear_user_permission_cache(self, target: CacheTarget) -> bool:
        """Drop a principal from every cache table.

        Args:
            target: Bare identity provider id, profile or principal reference.

        Returns:
            bool: True if anything was cached for the principal.
        """
        removed = await self._cache.invalidate(target)
        self._logger.debug("user_permission_cache_cleared", removed=removed)
        return removed

    async def clear_all_permission_cache(self) -> None:
        """Drop every cached entry (tooling and catalog reloads)."""
        await self._cache.invalidate_all()
        self._logger.info("all_permission_caches_cleared")

    def get_permission_cache_stats(self) -> PermissionCacheStats:
        """Snapshot cache counters."""
        return self._cache.stats()

    # =========================================================================
    # Principal-wide grants
    # =========================================================================

    async def grant_permissions(
        self,
        principal_id: str,
        permissions: list[str],
        *,
        granted_by: str,
        reason: str | None = None,
    ) -> Result[list[str], DomainError]:
        """Add explicit permissions to a principal.

        Validates every identifier first; nothing is written if any is
        unknown. Permissions already held explicitly keep their provenance.
        A permission held only temporarily is promoted to permanent.

        Args:
            principal_id: Identity provider user id.
            permissions: Permission identifiers.
            granted_by: Acting principal.
            reason: Optional reason.

        Returns:
            Success(list of newly added permissions) or Failure.
        """
        invalid = validate_principal_id(principal_id) or validate_permissions(permissions)
        if invalid is not None:
            return invalid

        async with self._locks.acquire(("profile", principal_id)):
            loaded = await self._identity_provider.get_profile(principal_id)
            if isinstance(loaded, Failure):
                return loaded
            profile = loaded.value

            now = self._clock.now()
            added: list[str] = []
            for permission in dict.fromkeys(permissions):
                held_permanently = (
                    permission in profile.permissions
                    and permission not in profile.temporary_permissions
                )
                if held_permanently:
                    continue
                if permission not in profile.permissions:
                    profile.permissions.append(permission)
                profile.temporary_permissions.pop(permission, None)
                profile.permission_metadata[permission] = PermissionProvenance(
                    source=PermissionSource.DIRECT,
                    granted_at=now,
                    granted_by=granted_by,
                    reason=reason,
                )
                added.append(permission)

            if added:
                written = await self._identity_provider.update_profile(profile)
                if isinstance(written, Failure):
                    self._logger.error(
                        "permission_grant_failed",
                        principal_id=principal_id,
                        error_code=written.error.code.value,
                    )
                    return written

        if added:
            await self.clear_user_permission_cache(principal_id)
            await self._record(
                AuditAction.PERMISSIONS_GRANTED,
                principal_id,
                granted_by,
                {"permissions": added, "reason": reason},
            )
        self._logger.info(
            "permissions_granted", principal_id=principal_id, added=added, granted_by=granted_by
        )
        return Success(value=added)

    async def revoke_permissions(
        self,
        principal_id: str,
        permissions: list[str],
        *,
        revoked_by: str,
        reason: str | None = None,
    ) -> Result[list[str], DomainError]:
        """Remove explicit and temporary grants.

        Role defaults cannot be revoked per principal. Revoking a permission
        the principal does not hold explicitly is not an error.

        Returns:
            Success(list of removed permissions; empty if nothing matched).
        """
        invalid = validate_principal_id(principal_id) or validate_permissions(permissions)
        if invalid is not None:
            return invalid

        async with self._locks.acquire(("profile", principal_id)):
            loaded = await self._identity_provider.get_profile(principal_id)
            if isinstance(loaded, Failure):
                return loaded
            profile = loaded.value

            targets = set(permissions)
            removed = [
                p
                for p in dict.fromkeys([*profile.permissions, *profile.temporary_permissions])
                if p in targets
            ]
            if removed:
                profile.permissions = [p for p in profile.permissions if p not in targets]
                for permission in removed:
                    profile.temporary_permissions.pop(permission, None)
                    profile.permission_metadata.pop(permission, None)

                written = await self._identity_provider.update_profile(profile)
                if isinstance(written, Failure):
                    return written

        if removed:
            await self.clear_user_permission_cache(principal_id)
            await self._record(
                AuditAction.PERMISSIONS_REVOKED,
                principal_id,
                revoked_by,
                {"permissions": removed, "reason": reason},
            )
        self._logger.info(
            "permissions_revoked", principal_id=principal_id, removed=removed, revoked_by=revoked_by
        )
        return Success(value=removed)

    async def reset_to_role_defaults(
        self,
        principal_id: str,
        *,
        reset_by: str,
        reason: str | None = None,
    ) -> Result[list[str], DomainError]:
        """Drop every explicit and temporary grant, leaving the role defaults.

        The role and resource-scoped grants are untouched.

        Returns:
            Success(list of removed permissions; empty if the principal held
            only role defaults).
        """
        invalid = validate_principal_id(principal_id)
        if invalid is not None:
            return invalid

        async with self._locks.acquire(("profile", principal_id)):
            loaded = await self._identity_provider.get_profile(principal_id)
            if isinstance(loaded, Failure):
                return loaded
            profile = loaded.value

            removed = list(dict.fromkeys([*profile.permissions, *profile.temporary_permissions]))
            if removed or profile.permission_metadata:
                profile.permissions = []
                profile.temporary_permissions = {}
                profile.permission_metadata = {}

                written = await self._identity_provider.update_profile(profile)
                if isinstance(written, Failure):
                    return written

        if removed:
            await self.clear_user_permission_cache(principal_id)
            await self._record(
                AuditAction.PERMISSIONS_RESET,
                principal_id,
                reset_by,
                {"permissions": removed, "role": profile.role, "reason": reason},
            )
        self._logger.info(
            "permissions_reset_to_role_defaults",
            principal_id=principal_id,
            removed=removed,
            role=profile.role,
            reset_by=reset_by,
        )
        return Success(value=removed)

    async def grant_temporary_permission(
        self,
        principal_id: str,
        permission: str,
        *,
        granted_by: str,
        duration: timedelta | None = None,
        expires_at: datetime | None = None,
        reason: str | None = None,
    ) -> Result[TemporaryPermission, DomainError]:
        """Grant a permission until a point in time.

        Exactly one of `duration` or `expires_at` is required. A second call
        for the same permission replaces the expiry.

        Args:
            principal_id: Identity provider user id.
            permission: Permission identifier.
            granted_by: Acting principal.
            duration: Positive duration from now.
            expires_at: Absolute expiry in the future.
            reason: Optional reason.

        Returns:
            Success(TemporaryPermission), Failure(ValidationError) for bad
            input, Failure(ConflictError) if already held permanently.
        """
        invalid = validate_principal_id(principal_id) or validate_permissions(
            [permission], field="permission"
        )
        if invalid is not None:
            return invalid

        now = self._clock.now()
        match duration, expires_at:
            case None, None:
                return _invalid_expiration("Either duration or expires_at is required")
            case timedelta(), None if duration > timedelta(0):
                expires_at = now + duration
            case timedelta(), None:
                return _invalid_expiration("Duration must be positive")
            case None, datetime() if expires_at > now:
                pass
            case None, datetime():
                return _invalid_expiration("Expiration must be in the future")
            case _:
                return _invalid_expiration("Pass either duration or expires_at, not both")

        grant = TemporaryPermission(granted_at=now, expires_at=expires_at, granted_by=granted_by)

        async with self._locks.acquire(("profile", principal_id)):
            loaded = await self._identity_provider.get_profile(principal_id)
            if isinstance(loaded, Failure):
                return loaded
            profile = loaded.value

            if permission in profile.permissions and permission not in profile.temporary_permissions:
                return Failure(
                    error=ConflictError(
                        code=ErrorCode.RESOURCE_CONFLICT,
                        message=f"{permission} is already granted permanently",
                        resource_type="permission",
                        conflicting_field="permissions",
                    )
                )

            profile.temporary_permissions[permission] = grant
            profile.permission_metadata[permission] = PermissionProvenance(
                source=PermissionSource.TEMPORARY,
                granted_at=now,
                granted_by=granted_by,
                reason=reason,
                expires_at=expires_at,
            )
            written = await self._identity_provider.update_profile(profile)
            if isinstance(written, Failure):
                return written

        await self.clear_user_permission_cache(principal_id)
        await self._record(
            AuditAction.TEMPORARY_PERMISSION_GRANTED,
            principal_id,
            granted_by,
            {"permission": permission, "expires_at": expires_at.isoformat(), "reason": reason},
        )
        self._logger.info(
            "temporary_permission_granted",
            principal_id=principal_id,
            permission=permission,
            expires_at=expires_at.isoformat(),
        )
        return Success(value=grant)

    # =========================================================================
    # Roles
    # =========================================================================

    async def change_user_role(
        self,
        principal_id: str,
        role: UserRole | str,
        *,
        changed_by: str,
        reason: str | None = None,
    ) -> Result[RoleChangeResult, DomainError]:
        """Change a role in the database, then mirror it to the identity provider.

        Args:
            principal_id: Identity provider user id.
            role: New role.
            changed_by: Acting principal.
            reason: Optional reason.

        Returns:
            Success(RoleChangeResult) once the database is written (check
            `mirror_synced`), or Failure if validation or the database write
            failed.
        """
        invalid = validate_principal_id(principal_id)
        if invalid is not None:
            return invalid
        role_value = role.value if isinstance(role, UserRole) else role
        if not UserRole.is_valid(role_value):
            return Failure(
                error=ValidationError(
                    code=ErrorCode.INVALID_ROLE,
                    message=f"Invalid role: {role_value}",
                    field="role",
                )
            )

        # 1. System of record
        now = self._clock.now()
        try:
            record = await self._principals.find_by_external_id(principal_id)
            if record is None:
                return Failure(
                    error=NotFoundError(
                        code=ErrorCode.PRINCIPAL_NOT_FOUND,
                        message=f"Principal not found in database: {principal_id}",
                        resource_type="principal",
                        resource_id=principal_id,
                    )
                )
            await self._principals.update_role(
                principal_id, role=role_value, source="role_change", synced_at=now
            )
        except SQLAlchemyError as e:
            self._logger.error("role_change_failed", error=e, principal_id=principal_id)
            return store_failure(e, "change_user_role")

        # 2. Identity provider mirror
        mirror_synced = await self._write_mirror_role(principal_id, role_value)

        await self.clear_user_permission_cache(principal_id)
        await self._record(
            AuditAction.ROLE_CHANGED,
            principal_id,
            changed_by,
            {
                "previous_role": record.role,
                "role": role_value,
                "reason": reason,
                "mirror_synced": mirror_synced,
            },
        )
        self._logger.info(
            "user_role_changed",
            principal_id=principal_id,
            previous_role=record.role,
            role=role_value,
            mirror_synced=mirror_synced,
        )
        return Success(
            value=RoleChangeResult(
                principal_id=principal_id,
                previous_role=record.role,
                role=role_value,
                mirror_synced=mirror_synced,
            )
        )

    async def _write_mirror_role(self, principal_id: str, role: str) -> bool:
        async with self._locks.acquire(("profile", principal_id)):
            loaded = await self._identity_provider.get_profile(principal_id)
            if isinstance(loaded, Success):
                profile = loaded.value
                profile.role = role
                written = await self._identity_provider.update_profile(profile)
                if isinstance(written, Success):
                    return True
                error = written.error
            else:
                error = loaded.error

        self._logger.warning(
            "role_mirror_sync_failed",
            principal_id=principal_id,
            error_code=error.code.value,
            error_message=error.message,
        )
        return False

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


def _describe(ref: PrincipalRef) -> str:
    return ref.cache_key or "anonymous"


def _invalid_expiration(message: str) -> Failure[ValidationError]:
    return Failure(
        error=ValidationError(
            code=ErrorCode.INVALID_EXPIRATION,
            message=message,
            field="expires_at",
        )
    )
