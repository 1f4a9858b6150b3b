"""In-process permission cache.

Memoizes resolver output per principal in three tables:

- full permission list (principal key)
- single permission result (principal key + permission)
- domain permission map (principal key + domain)

Entries expire after a TTL, or sooner when a temporary grant lapses first: a
full-list entry lives until its `valid_until`, and derived entries never
outlive the full-list entry they were computed from. When the full-list
table grows past `max_size`, the oldest 20% by insertion time are evicted.
The two derived tables are swept of expired entries only when they grow past
a larger multiple of `max_size`.
`invalidate` drops a principal from all three tables together.

Multiple processes:
    With an invalidation bus attached, `invalidate` and `invalidate_all` are
    also published so every other process drops the same entries through
    `invalidate_local` and `clear_local`. Without one, invalidations stay in
    this process and other processes converge only when their entries expire.

Concurrency:
    Call from the owning event loop. Table reads and writes never span an
    await, so no reader observes a half-written or half-evicted entry.
    Concurrent misses for the same key share one in-flight computation.
    Failures are returned to every waiter and never stored.

Usage:
    cache = PermissionCache(ttl_seconds=120, max_size=500)

    result = await cache.get_permissions("user:u1", compute)
    await cache.invalidate("u1")
"""

import asyncio
import heapq
import math
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Generic, TypeVar

from authz.core.constants import (
    CACHE_EVICTION_FRACTION,
    DOMAIN_TABLE_SWEEP_MULTIPLIER,
    PERMISSION_TABLE_SWEEP_MULTIPLIER,
)
from authz.core.errors import DomainError
from authz.core.result import Result, Success
from authz.domain.protocols import ClockProtocol, LoggerProtocol
from authz.domain.protocols.permission_cache_protocol import (
    CacheInvalidationBusProtocol,
    CacheTarget,
    PermissionCacheStats,
    ResolvedPermissions,
)
from authz.infrastructure.time import SystemClock

V = TypeVar("V")

_FULL_LIST = ""


@dataclass(slots=True)
class _CacheEntry(Generic[V]):
    value: V
    expires_at: datetime
    inserted_at: datetime


class _Table(Generic[V]):
    """Two-level table: principal key -> sub key -> entry."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._entries: dict[str, dict[str, _CacheEntry[V]]] = {}
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def get(self, key: str, sub_key: str, now: datetime) -> _CacheEntry[V] | None:
        entry = self._entries.get(key, {}).get(sub_key)
        if entry is None or entry.expires_at <= now:
            return None
        return entry

    def peek(self, key: str, sub_key: str) -> _CacheEntry[V] | None:
        """Entry regardless of expiry."""
        return self._entries.get(key, {}).get(sub_key)

    def put(self, key: str, sub_key: str, entry: _CacheEntry[V]) -> None:
        bucket = self._entries.setdefault(key, {})
        if sub_key not in bucket:
            self._size += 1
        bucket[sub_key] = entry

    def discard(self, key: str) -> bool:
        bucket = self._entries.pop(key, None)
        if not bucket:
            return False
        self._size -= len(bucket)
        return True

    def clear(self) -> None:
        self._entries.clear()
        self._size = 0

    def oldest_keys(self, count: int) -> list[str]:
        """Principal keys whose oldest entry was inserted first."""
        return heapq.nsmallest(
            count,
            self._entries,
            key=lambda k: min(e.inserted_at for e in self._entries[k].values()),
        )

    def sweep_expired(self, now: datetime) -> int:
        removed = 0
        for key in list(self._entries):
            bucket = self._entries[key]
            for sub_key in [s for s, e in bucket.items() if e.expires_at <= now]:
                del bucket[sub_key]
                removed += 1
            if not bucket:
                del self._entries[key]
        self._size -= removed
        return removed


class PermissionCache:
    """TTL and size bounded permission cache with single-flight misses.

    Constructed explicitly (container lifecycle or directly in tests), never a
    module-level singleton.

    Attributes:
        enabled: When False every lookup computes live.
    """

    def __init__(
        self,
        *,
        ttl_seconds: int = 120,
        max_size: int = 500,
        enabled: bool = True,
        clock: ClockProtocol | None = None,
        logger: LoggerProtocol | None = None,
        bus: CacheInvalidationBusProtocol | None = None,
    ) -> None:
        """Initialize cache.

        Args:
            ttl_seconds: Entry time to live.
            max_size: Full-list table bound before eviction.
            enabled: Disable to always compute live.
            clock: Time source for expiry (defaults to SystemClock).
            logger: Optional structured logger.
            bus: Optional invalidation bus shared with other processes.
        """
        if ttl_seconds < 1:
            raise ValueError("ttl_seconds must be at least 1")
        if max_size < 1:
            raise ValueError("max_size must be at least 1")

        self.enabled = enabled
        self._ttl = timedelta(seconds=ttl_seconds)
        self._ttl_seconds = ttl_seconds
        self._max_size = max_size
        self._clock: ClockProtocol = clock or SystemClock()
        self._logger = logger
        self._bus = bus

        self._lists: _Table[ResolvedPermissions] = _Table("permissions")
        self._checks: _Table[bool] = _Table("permission_results")
        self._domains: _Table[dict[str, bool]] = _Table("domain_permissions")
        self._in_flight: dict[tuple[str, str, str], asyncio.Future[Any]] = {}

        self._hits = 0
        self._misses = 0
        self._permission_hits = 0
        self._permission_misses = 0
        self._evictions = 0

    # =========================================================================
    # Lookups
    # =========================================================================

    async def get_permissions(
        self,
        key: str | None,
        compute: Callable[[], Awaitable[Result[ResolvedPermissions, DomainError]]],
    ) -> Result[frozenset[str], DomainError]:
        """Get the full effective permission set.

        Args:
            key: Normalized principal key, or None to compute uncached.
            compute: Resolver call producing the value on a miss.

        Returns:
            Cached or freshly computed result. Failures are not cached.
        """
        result = await self._get_or_compute(self._lists, key, _FULL_LIST, compute)
        if isinstance(result, Success):
            return Success(value=result.value.permissions)
        return result

    async def get_permission_result(
        self,
        key: str | None,
        permission: str,
        compute: Callable[[], Awaitable[Result[bool, DomainError]]],
    ) -> Result[bool, DomainError]:
        """Get a single permission check result."""
        return await self._get_or_compute(self._checks, key, permission, compute)

    async def get_domain_permissions(
        self,
        key: str | None,
        domain: str,
        compute: Callable[[], Awaitable[Result[dict[str, bool], DomainError]]],
    ) -> Result[dict[str, bool], DomainError]:
        """Get a domain permission map."""
        result = await self._get_or_compute(self._domains, key, domain, compute)
        if isinstance(result, Success):
            return Success(value=dict(result.value))
        return result

    async def _get_or_compute(
        self,
        table: _Table[V],
        key: str | None,
        sub_key: str,
        compute: Callable[[], Awaitable[Result[V, DomainError]]],
    ) -> Result[V, DomainError]:
        if not self.enabled or key is None:
            return await compute()

        entry = table.get(key, sub_key, self._clock.now())
        if entry is not None:
            self._count(table, hit=True)
            return Success(value=entry.value)
        self._count(table, hit=False)

        flight_key = (table.name, key, sub_key)
        pending = self._in_flight.get(flight_key)
        if pending is not None:
            shared = await asyncio.shield(pending)
            if shared is not None:
                return shared
            # Owner was cancelled or raised; compute independently.
            return await compute()

        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._in_flight[flight_key] = future
        result: Result[V, DomainError] | None = None
        try:
            result = await compute()
        finally:
            current = self._in_flight.get(flight_key) is future
            if current:
                del self._in_flight[flight_key]
            if not future.done():
                future.set_result(result)

        # An invalidation during compute detaches the flight; do not store.
        if current and isinstance(result, Success):
            self._store(table, key, sub_key, result.value)
        return result

    def _count(self, table: _Table[Any], *, hit: bool) -> None:
        if table is self._lists:
            if hit:
                self._hits += 1
            else:
                self._misses += 1
        elif hit:
            self._permission_hits += 1
        else:
            self._permission_misses += 1

    def _store(self, table: _Table[V], key: str, sub_key: str, value: V) -> None:
        now = self._clock.now()
        expires_at = now + self._ttl
        if isinstance(value, ResolvedPermissions):
            if value.valid_until is not None:
                expires_at = min(expires_at, value.valid_until)
        else:
            # Derived values were computed from the full list stored just before
            listed = self._lists.peek(key, _FULL_LIST)
            if listed is not None:
                expires_at = min(expires_at, listed.expires_at)
            if expires_at <= now:
                return

        table.put(key, sub_key, _CacheEntry(value=value, expires_at=expires_at, inserted_at=now))

        if table is self._lists and len(table) > self._max_size:
            self._evict_oldest()
        elif table is self._checks and len(table) > self._max_size * PERMISSION_TABLE_SWEEP_MULTIPLIER:
            self._sweep(table, now)
        elif table is self._domains and len(table) > self._max_size * DOMAIN_TABLE_SWEEP_MULTIPLIER:
            self._sweep(table, now)

    def _evict_oldest(self) -> None:
        count = math.ceil(self._max_size * CACHE_EVICTION_FRACTION)
        evicted = sum(1 for key in self._lists.oldest_keys(count) if self._lists.discard(key))
        self._evictions += evicted
        if self._logger:
            self._logger.debug("permission_cache_evicted", evicted=evicted, size=len(self._lists))

    def _sweep(self, table: _Table[Any], now: datetime) -> None:
        removed = table.sweep_expired(now)
        if self._logger:
            self._logger.debug(
                "permission_cache_swept", table=table.name, removed=removed, size=len(table)
            )

    # =========================================================================
    # Invalidation
    # =========================================================================

    async def invalidate(self, target: CacheTarget) -> bool:
        """Remove a principal from all three tables, here and on the bus.

        Args:
            target: Bare identity provider id, profile, or principal reference.

        Returns:
            bool: True if any local table held an entry for the principal.
        """
        key = self.key_for(target)
        if key is None:
            return False

        removed = self.invalidate_local(key)
        if self._bus is not None:
            await self._bus.publish(key)
        return removed

    def invalidate_local(self, key: str) -> bool:
        """Remove a normalized key from this process only (bus deliveries)."""
        removed = False
        for table in (self._lists, self._checks, self._domains):
            removed = table.discard(key) or removed
        for flight_key in [k for k in self._in_flight if k[1] == key]:
            del self._in_flight[flight_key]

        if self._logger:
            self._logger.debug("permission_cache_invalidated", cache_key=key, removed=removed)
        return removed

    async def invalidate_all(self) -> None:
        """Clear every table and reset statistics, here and on the bus."""
        self.clear_local()
        if self._bus is not None:
            await self._bus.publish(None)

    def clear_local(self) -> None:
        """Clear this process only (bus deliveries and resubscription)."""
        for table in (self._lists, self._checks, self._domains):
            table.clear()
        self._in_flight.clear()
        self._hits = self._misses = 0
        self._permission_hits = self._permission_misses = 0
        self._evictions = 0
        if self._logger:
            self._logger.info("permission_cache_cleared")

    @staticmethod
    def key_for(target: CacheTarget) -> str | None:
        """Normalize an invalidation target to a cache key.

        Bare strings are identity provider ids and map to `user:<id>`.
        """
        if isinstance(target, str):
            return f"user:{target}" if target else None
        return target.cache_key

    # =========================================================================
    # Statistics
    # =========================================================================

    def stats(self) -> PermissionCacheStats:
        """Snapshot cache counters and table sizes."""
        lookups = self._hits + self._misses
        permission_lookups = self._permission_hits + self._permission_misses
        return PermissionCacheStats(
            enabled=self.enabled,
            hits=self._hits,
            misses=self._misses,
            permission_hits=self._permission_hits,
            permission_misses=self._permission_misses,
            evictions=self._evictions,
            hit_rate=self._hits / lookups if lookups else 0.0,
            permission_hit_rate=(
                self._permission_hits / permission_lookups if permission_lookups else 0.0
            ),
            size=len(self._lists),
            permission_size=len(self._checks),
            domain_size=len(self._domains),
            max_size=self._max_size,
            ttl_seconds=self._ttl_seconds,
        )
