"""Tests for authz.core.keyed_lock."""

import asyncio

import pytest

from authz.core.keyed_lock import KeyedLock


@pytest.mark.unit
class TestKeyedLock:
    """Test per-key serialization."""

    @pytest.mark.asyncio
    async def test_same_key_is_serialized(self):
        """Should not let two holders of one key overlap."""
        locks = KeyedLock()
        events: list[str] = []

        async def worker(name: str):
            async with locks.acquire(("profile", "user_1")):
                events.append(f"{name}:enter")
                await asyncio.sleep(0)
                events.append(f"{name}:exit")

        await asyncio.gather(worker("a"), worker("b"))

        assert events == ["a:enter", "a:exit", "b:enter", "b:exit"]

    @pytest.mark.asyncio
    async def test_different_keys_run_concurrently(self):
        """Should not block holders of unrelated keys."""
        locks = KeyedLock()
        inside = asyncio.Event()
        release = asyncio.Event()

        async def holder():
            async with locks.acquire("a"):
                inside.set()
                await release.wait()

        task = asyncio.create_task(holder())
        await inside.wait()

        async with locks.acquire("b"):
            acquired_b = True
        release.set()
        await task

        assert acquired_b is True

    @pytest.mark.asyncio
    async def test_locks_are_dropped_when_unused(self):
        """Should not keep a lock for a key nobody holds."""
        locks = KeyedLock()

        async with locks.acquire("a"):
            assert len(locks) == 1

        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_lock_released_on_exception(self):
        """Should release and drop the lock when the block raises."""
        locks = KeyedLock()

        with pytest.raises(RuntimeError):
            async with locks.acquire("a"):
                raise RuntimeError("boom")

        assert len(locks) == 0
        async with locks.acquire("a"):
            pass
