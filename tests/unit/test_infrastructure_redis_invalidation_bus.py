"""Unit tests for RedisInvalidationBus (cross-process cache invalidation).

Tests cover:
- Publish payload and fail-open publish errors
- Applying messages from other processes, skipping our own
- Listener subscription, delivery and resubscription after a Redis error

Architecture:
- Redis client mocked; pub/sub replaced by a scripted fake
- Real PermissionCache driven by the fixed clock
"""

import asyncio
import json
from unittest.mock import AsyncMock, Mock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from authz.core.result import Success
from authz.domain.protocols import ResolvedPermissions
from authz.infrastructure.cache import RedisInvalidationBus

CHANNEL = "authz:test:invalidations"


class FakePubSub:
    """Scripted stand-in for redis.asyncio.client.PubSub.

    `listen()` waits for `gate`, yields the scripted messages, then raises
    `error` if given or blocks until cancelled.
    """

    def __init__(self, messages=(), error: Exception | None = None) -> None:
        self.messages = list(messages)
        self.error = error
        self.gate = asyncio.Event()
        self.subscribed = asyncio.Event()
        self.delivered = asyncio.Event()
        self.unsubscribe = AsyncMock()
        self.aclose = AsyncMock()

    async def subscribe(self, channel: str) -> None:
        self.channel = channel
        self.subscribed.set()

    async def listen(self):
        await self.gate.wait()
        yield {"type": "subscribe", "channel": CHANNEL, "data": 1}
        for message in self.messages:
            yield message
        self.delivered.set()
        if self.error is not None:
            raise self.error
        await asyncio.Event().wait()


def message(origin: str, key: str | None) -> dict:
    return {
        "type": "message",
        "channel": CHANNEL,
        "data": json.dumps({"origin": origin, "key": key}).encode(),
    }


def resolved(permissions=frozenset()):
    return AsyncMock(return_value=Success(value=ResolvedPermissions(permissions)))


@pytest.fixture
def mock_redis() -> Mock:
    redis = Mock()
    redis.publish = AsyncMock()
    redis.aclose = AsyncMock()
    return redis


@pytest.fixture
def bus(mock_redis, mock_logger) -> RedisInvalidationBus:
    return RedisInvalidationBus(
        redis_client=mock_redis, channel=CHANNEL, logger=mock_logger, resubscribe_delay=0
    )


@pytest.mark.unit
class TestPublish:
    """Test publish()."""

    @pytest.mark.asyncio
    async def test_publishes_origin_and_key(self, bus, mock_redis):
        """Should publish a JSON payload tagged with this bus's origin."""
        await bus.publish("user:u1")

        channel, payload = mock_redis.publish.await_args.args
        assert channel == CHANNEL
        assert json.loads(payload) == {"origin": bus.origin, "key": "user:u1"}

    @pytest.mark.asyncio
    async def test_clear_all_publishes_null_key(self, bus, mock_redis):
        """Should publish a null key for a full clear."""
        await bus.publish(None)

        assert json.loads(mock_redis.publish.await_args.args[1])["key"] is None

    @pytest.mark.asyncio
    async def test_redis_error_is_logged_not_raised(self, bus, mock_redis, mock_logger):
        """Should fail open when Redis is unreachable."""
        mock_redis.publish.side_effect = RedisConnectionError("down")

        await bus.publish("user:u1")

        assert mock_logger.warning.call_args.args[0] == "cache_invalidation_publish_failed"

    @pytest.mark.asyncio
    async def test_close_closes_client(self, bus, mock_redis):
        """Should close the Redis client."""
        await bus.close()

        mock_redis.aclose.assert_awaited_once()


@pytest.mark.unit
class TestApply:
    """Test apply() against a real cache."""

    @pytest.mark.asyncio
    async def test_other_origin_invalidates_key(self, bus, permission_cache):
        """Should drop the key published by another process."""
        await permission_cache.get_permissions("user:u1", resolved())
        await permission_cache.get_permissions("user:u2", resolved())

        applied = bus.apply(permission_cache, message("worker-2", "user:u1")["data"])

        assert applied is True
        assert permission_cache.stats().size == 1

    @pytest.mark.asyncio
    async def test_null_key_clears_everything(self, bus, permission_cache):
        """Should clear every table for a full-clear message."""
        await permission_cache.get_permissions("user:u1", resolved())

        assert bus.apply(permission_cache, message("worker-2", None)["data"]) is True
        assert permission_cache.stats().size == 0

    @pytest.mark.asyncio
    async def test_own_messages_are_skipped(self, bus, permission_cache):
        """Should ignore messages this process published."""
        await permission_cache.get_permissions("user:u1", resolved())

        assert bus.apply(permission_cache, message(bus.origin, "user:u1")["data"]) is False
        assert permission_cache.stats().size == 1

    @pytest.mark.parametrize("data", [b"not json", b"{}", b"[]", None])
    def test_malformed_messages_are_logged(self, bus, permission_cache, mock_logger, data):
        """Should log and skip payloads that are not invalidations."""
        assert bus.apply(permission_cache, data) is False
        assert mock_logger.warning.call_args.args[0] == "cache_invalidation_message_invalid"


@pytest.mark.unit
class TestListen:
    """Test the listener task."""

    @pytest.mark.asyncio
    async def test_applies_messages_from_other_processes(
        self, bus, mock_redis, permission_cache
    ):
        """Should drop keys invalidated elsewhere and ignore its own echoes."""
        pubsub = FakePubSub(
            [message("worker-2", "user:u1"), message(bus.origin, "user:u2")]
        )
        mock_redis.pubsub.return_value = pubsub
        ready = asyncio.Event()
        task = asyncio.create_task(bus.listen(permission_cache, ready))
        await ready.wait()

        await permission_cache.get_permissions("user:u1", resolved())
        await permission_cache.get_permissions("user:u2", resolved())
        pubsub.gate.set()
        await pubsub.delivered.wait()

        assert pubsub.channel == CHANNEL
        assert permission_cache.invalidate_local("user:u1") is False
        assert permission_cache.invalidate_local("user:u2") is True

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        pubsub.unsubscribe.assert_awaited_once_with(CHANNEL)
        pubsub.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_resubscribes_and_clears_after_redis_error(
        self, bus, mock_redis, permission_cache, mock_logger
    ):
        """Should resubscribe after losing Redis and drop what it may have missed."""
        first = FakePubSub(error=RedisConnectionError("connection reset"))
        second = FakePubSub()
        mock_redis.pubsub.side_effect = [first, second]
        ready = asyncio.Event()
        task = asyncio.create_task(bus.listen(permission_cache, ready))
        await ready.wait()

        await permission_cache.get_permissions("user:u1", resolved())
        first.gate.set()
        await second.subscribed.wait()
        await asyncio.sleep(0)

        assert permission_cache.stats().size == 0
        first.aclose.assert_awaited_once()
        warnings = [call.args[0] for call in mock_logger.warning.call_args_list]
        assert "cache_invalidation_subscription_lost" in warnings

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
