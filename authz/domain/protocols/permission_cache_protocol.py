"""Permission cache port.

The permission service memoizes resolver output through this port. Values are
Result types; implementations store only Success values.

Architecture:
- Protocol-based (structural typing)
- Frozen dataclasses for the resolved list and the statistics snapshot
- Keys are normalized principal keys (`user:<id>` or `email:<email>`);
  a None key means "do not cache, compute live"
- Full-list values carry `valid_until`, the instant the earliest active
  temporary grant lapses; no table serves a principal past that instant
"""

from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Protocol

from authz.core.errors import DomainError
from authz.core.result import Result
from authz.domain.entities import PrincipalProfile
from authz.domain.value_objects import FullProfile, IdOnly

type CacheTarget = str | PrincipalProfile | FullProfile | IdOnly


@dataclass(frozen=True, slots=True)
class ResolvedPermissions:
    """Resolver output as stored in the full-list table.

    Attributes:
        permissions: Effective permission set.
        valid_until: When the set next changes on its own (earliest active
            temporary grant expiry), or None if it only changes on a write.
    """

    permissions: frozenset[str]
    valid_until: datetime | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class PermissionCacheStats:
    """Snapshot of cache counters.

    Attributes:
        enabled: Whether caching is active.
        hits: Full-list hits.
        misses: Full-list misses.
        permission_hits: Single-permission and domain-map hits.
        permission_misses: Single-permission and domain-map misses.
        evictions: Full-list entries evicted for size.
        hit_rate: hits / (hits + misses), 0.0 when unused.
        permission_hit_rate: Same ratio for the derived tables.
        size: Full-list table entries.
        permission_size: Single-permission table entries.
        domain_size: Domain-map table entries.
        max_size: Configured full-list bound.
        ttl_seconds: Configured TTL.
    """

    enabled: bool
    hits: int
    misses: int
    permission_hits: int
    permission_misses: int
    evictions: int
    hit_rate: float
    permission_hit_rate: float
    size: int
    permission_size: int
    domain_size: int
    max_size: int
    ttl_seconds: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class PermissionCacheProtocol(Protocol):
    """What the permission service needs from a cache."""

    async def get_permissions(
        self,
        key: str | None,
        compute: Callable[[], Awaitable[Result[ResolvedPermissions, DomainError]]],
    ) -> Result[frozenset[str], DomainError]:
        """Get or compute the full effective permission set.

        The entry is kept until `valid_until` when that is sooner than the TTL.
        """
        ...

    async def get_permission_result(
        self,
        key: str | None,
        permission: str,
        compute: Callable[[], Awaitable[Result[bool, DomainError]]],
    ) -> Result[bool, DomainError]:
        """Get or compute a single permission check."""
        ...

    async def get_domain_permissions(
        self,
        key: str | None,
        domain: str,
        compute: Callable[[], Awaitable[Result[dict[str, bool], DomainError]]],
    ) -> Result[dict[str, bool], DomainError]:
        """Get or compute a domain permission map."""
        ...

    async def invalidate(self, target: CacheTarget) -> bool:
        """Drop a principal from every table.

        Args:
            target: Bare identity provider id, profile or principal reference.

        Returns:
            bool: True if anything was removed.
        """
        ...

    async def invalidate_all(self) -> None:
        """Drop every entry."""
        ...

    def stats(self) -> PermissionCacheStats:
        """Snapshot counters."""
        ...


class CacheInvalidationBusProtocol(Protocol):
    """Fan-out of cache invalidations to every process holding a cache."""

    async def publish(self, key: str | None) -> None:
        """Announce an invalidation.

        Args:
            key: Normalized principal key, or None for "drop everything".
        """
        ...
