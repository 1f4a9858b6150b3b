"""Infrastructure dependency factories.

Application-scoped singletons for core infrastructure services:
- Logging (structlog console/JSON)
- Database (SQLAlchemy async engine)
- Identity provider (Clerk or in-memory)
- Clock
- Profile locks

Plus the permission cache lifecycle (with its optional Redis invalidation
listener) and request-scoped sessions.
"""

import asyncio
import contextlib
from functools import lru_cache
from typing import TYPE_CHECKING, AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from authz.core.config import settings
from authz.core.keyed_lock import KeyedLock
from authz.infrastructure.persistence.database import Database

if TYPE_CHECKING:
    from authz.domain.protocols import (
        ClockProtocol,
        IdentityProviderProtocol,
        LoggerProtocol,
        PermissionAuditProtocol,
    )
    from authz.infrastructure.cache import PermissionCache, RedisInvalidationBus


# Module-level state for the permission cache (see init_permission_cache)
_permission_cache: "PermissionCache | None" = None
_invalidation_bus: "RedisInvalidationBus | None" = None
_invalidation_listener: "asyncio.Task[None] | None" = None


# ============================================================================
# Application-Scoped Dependencies (Singletons)
# ============================================================================


@lru_cache()
def get_logger() -> "LoggerProtocol":
    """Return the application-scoped logger singleton.

    Adapter selection:
    - development: ConsoleAdapter (human-readable)
    - testing/ci/production: ConsoleAdapter (JSON)

    Returns:
        LoggerProtocol: Logger instance implementing the protocol.
    """
    from authz.infrastructure.logging.console_adapter import ConsoleAdapter

    return ConsoleAdapter(use_json=not settings.is_development, level=settings.log_level)


@lru_cache()
def get_database() -> Database:
    """Get database manager singleton (app-scoped).

    Use get_db_session() for per-request sessions.

    Returns:
        Database manager instance.
    """
    return Database(
        database_url=settings.database_url,
        echo=settings.db_echo,
    )


@lru_cache()
def get_identity_provider() -> "IdentityProviderProtocol":
    """Get identity provider singleton (app-scoped).

    Backend is selected by `identity_provider_backend`:
    - clerk: ClerkIdentityProvider (requires CLERK_SECRET_KEY)
    - memory: InMemoryIdentityProvider (development and tests)

    Returns:
        Identity provider implementing IdentityProviderProtocol.

    Raises:
        RuntimeError: If the Clerk backend is selected without a secret key.
    """
    if settings.identity_provider_backend == "memory":
        from authz.infrastructure.identity.memory_adapter import InMemoryIdentityProvider

        return InMemoryIdentityProvider()

    from authz.infrastructure.identity.clerk_adapter import ClerkIdentityProvider

    if not settings.clerk_secret_key:
        raise RuntimeError("CLERK_SECRET_KEY is required for the clerk identity provider")
    return ClerkIdentityProvider(
        secret_key=settings.clerk_secret_key,
        base_url=settings.clerk_api_base_url,
        timeout=settings.identity_provider_timeout,
    )


@lru_cache()
def get_clock() -> "ClockProtocol":
    from authz.infrastructure.time.system_clock import SystemClock

    return SystemClock()


@lru_cache()
def get_locks() -> KeyedLock:
    """Per-key locks shared by every service writing the same profiles or grants."""
    return KeyedLock()


# ============================================================================
# Permission Cache Lifecycle
# ============================================================================


def init_permission_cache() -> "PermissionCache":
    """Construct the permission cache at application startup.

    MUST be called from inside the event loop during FastAPI lifespan
    startup (or at the start of a job process). With `redis_url` set, the
    cache publishes its invalidations over Redis and a background task
    applies those of every other process. Without it, invalidations reach
    only this process, so run a single worker.

    Returns:
        The new PermissionCache.

    Raises:
        RuntimeError: If the cache is already initialized, or Redis is
            configured and no event loop is running.
    """
    global _permission_cache, _invalidation_bus, _invalidation_listener

    if _permission_cache is not None:
        raise RuntimeError("Permission cache already initialized")

    from authz.infrastructure.cache import PermissionCache

    bus = _build_invalidation_bus() if settings.redis_url else None
    cache = PermissionCache(
        ttl_seconds=settings.permission_cache_ttl_seconds,
        max_size=settings.permission_cache_max_size,
        enabled=settings.permission_cache_enabled,
        clock=get_clock(),
        logger=get_logger(),
        bus=bus,
    )
    if bus is not None:
        _invalidation_listener = asyncio.get_running_loop().create_task(
            bus.listen(cache), name="permission-cache-invalidation"
        )
        _invalidation_bus = bus
    elif not settings.is_development:
        get_logger().warning("permission_cache_invalidation_local_only", redis_url=None)

    _permission_cache = cache
    get_logger().info(
        "permission_cache_initialized",
        enabled=settings.permission_cache_enabled,
        ttl_seconds=settings.permission_cache_ttl_seconds,
        max_size=settings.permission_cache_max_size,
        shared_invalidation=bus is not None,
    )
    return cache


def _build_invalidation_bus() -> "RedisInvalidationBus":
    from redis.asyncio import ConnectionPool, Redis

    from authz.infrastructure.cache import RedisInvalidationBus

    # Pub/sub holds a long-lived connection, so no socket timeout
    pool = ConnectionPool.from_url(
        settings.redis_url,
        max_connections=5,
        decode_responses=False,
        socket_connect_timeout=5,
        socket_timeout=None,
        socket_keepalive=True,
    )
    return RedisInvalidationBus(redis_client=Redis(connection_pool=pool), logger=get_logger())


def get_permission_cache() -> "PermissionCache":
    """Get the permission cache.

    Raises:
        RuntimeError: If called before init_permission_cache().
    """
    if _permission_cache is None:
        raise RuntimeError(
            "Permission cache not initialized. Call init_permission_cache() during startup."
        )
    return _permission_cache


async def shutdown_permission_cache() -> None:
    """Stop the invalidation listener, clear the cache and drop the reference.

    Only this process's tables are cleared; nothing is published.
    """
    global _permission_cache, _invalidation_bus, _invalidation_listener

    if _permission_cache is None:
        return

    if _invalidation_listener is not None:
        _invalidation_listener.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await _invalidation_listener
        _invalidation_listener = None
    if _invalidation_bus is not None:
        await _invalidation_bus.close()
        _invalidation_bus = None

    _permission_cache.clear_local()
    _permission_cache = None
    get_logger().info("permission_cache_shutdown")


# ============================================================================
# Request-Scoped Dependencies (Per-Request)
# ============================================================================


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session (request-scoped).

    Commits on success, rolls back on exception, always closes.

    Yields:
        Database session for request duration.
    """
    db = get_database()
    async with db.get_session() as session:
        yield session


async def get_audit_session() -> AsyncGenerator[AsyncSession, None]:
    """Get audit session (request-scoped, independent lifecycle).

    Separate from get_db_session() so audit entries persist when the
    business transaction rolls back.

    Yields:
        Database session for audit operations only.
    """
    db = get_database()
    async with db.get_session() as session:
        yield session


async def get_audit(
    audit_session: AsyncSession = Depends(get_audit_session),
) -> "PermissionAuditProtocol":
    """Get audit trail adapter (request-scoped with separate session).

    Args:
        audit_session: Independent database session for audit operations.

    Returns:
        DatabaseAuditAdapter implementing PermissionAuditProtocol.
    """
    from authz.infrastructure.audit import DatabaseAuditAdapter

    return DatabaseAuditAdapter(session=audit_session, clock=get_clock())
