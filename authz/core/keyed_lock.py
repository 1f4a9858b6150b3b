"""Per-key asyncio locks.

Serializes read-modify-write sequences on one key (a resource grant tuple or
a principal profile) within a process. Locks are dropped once no task holds or
waits on them.

Usage:
    locks = KeyedLock()

    async with locks.acquire(("profile", principal_id)):
        profile = await provider.get_profile(principal_id)
        ...
        await provider.update_profile(profile)
"""

import asyncio
from collections.abc import AsyncIterator, Hashable
from contextlib import asynccontextmanager


class KeyedLock:
    """Registry of asyncio.Lock objects keyed by arbitrary hashable keys."""

    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._holders: dict[Hashable, int] = {}

    @asynccontextmanager
    async def acquire(self, key: Hashable) -> AsyncIterator[None]:
        """Hold the lock for key for the duration of the block."""
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)
