"""Permission cache adapter and its cross-process invalidation bus."""

from authz.infrastructure.cache.permission_cache import PermissionCache
from authz.infrastructure.cache.redis_invalidation_bus import RedisInvalidationBus

__all__ = ["PermissionCache", "RedisInvalidationBus"]
