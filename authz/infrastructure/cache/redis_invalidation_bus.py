"""Redis pub/sub fan-out of permission cache invalidations.

Every process holding a PermissionCache (API workers, reconciler and verifier
runs) publishes its invalidations on one channel and applies everyone else's
to its own tables.

Architecture:
- Implements CacheInvalidationBusProtocol without inheritance
- Messages are JSON: {"origin": <bus id>, "key": <cache key or null>};
  a null key clears every table
- Publishing fails open: a Redis error is logged, the local invalidation
  stands, and other processes converge when their entries expire
- The listener clears the local cache each time it (re)subscribes, since
  anything published while it was disconnected is lost

Usage:
    bus = RedisInvalidationBus(redis_client=redis, logger=logger)
    cache = PermissionCache(ttl_seconds=120, bus=bus)
    listener = asyncio.create_task(bus.listen(cache))
"""

import asyncio
import json
from typing import Any
from uuid import uuid4

from redis.asyncio import Redis
from redis.exceptions import RedisError

from authz.core.constants import (
    CACHE_INVALIDATION_CHANNEL,
    CACHE_INVALIDATION_RESUBSCRIBE_SECONDS,
)
from authz.domain.protocols import LoggerProtocol
from authz.infrastructure.cache.permission_cache import PermissionCache


class RedisInvalidationBus:
    """Redis implementation of CacheInvalidationBusProtocol.

    Note: Does NOT inherit from CacheInvalidationBusProtocol (uses structural
    typing).

    Attributes:
        _redis: Async Redis client (pub/sub needs a pool without socket timeout).
        _channel: Pub/sub channel shared by every process.
        _origin: Id stamped on this process's messages so it skips its own.
    """

    def __init__(
        self,
        redis_client: "Redis",
        *,
        channel: str = CACHE_INVALIDATION_CHANNEL,
        logger: LoggerProtocol | None = None,
        resubscribe_delay: float = CACHE_INVALIDATION_RESUBSCRIBE_SECONDS,
    ) -> None:
        """Initialize the bus.

        Args:
            redis_client: Async Redis client instance.
            channel: Pub/sub channel name.
            logger: Optional structured logger.
            resubscribe_delay: Seconds to wait before resubscribing after a
                dropped subscription.
        """
        self._redis = redis_client
        self._channel = channel
        self._logger = logger
        self._resubscribe_delay = resubscribe_delay
        self._origin = uuid4().hex

    @property
    def origin(self) -> str:
        return self._origin

    async def publish(self, key: str | None) -> None:
        """Publish an invalidation (fail-open).

        Args:
            key: Normalized principal key, or None to clear everything.
        """
        message = json.dumps({"origin": self._origin, "key": key})
        try:
            await self._redis.publish(self._channel, message)
        except RedisError as e:
            if self._logger:
                self._logger.warning(
                    "cache_invalidation_publish_failed",
                    cache_key=key,
                    channel=self._channel,
                    error=str(e),
                )

    async def listen(self, cache: PermissionCache, ready: asyncio.Event | None = None) -> None:
        """Apply other processes' invalidations to `cache` until cancelled.

        Args:
            cache: Local cache to invalidate.
            ready: Optional event set once the first subscription is live.
        """
        while True:
            pubsub = self._redis.pubsub()
            try:
                await pubsub.subscribe(self._channel)
                cache.clear_local()
                if self._logger:
                    self._logger.info("cache_invalidation_subscribed", channel=self._channel)
                if ready is not None:
                    ready.set()

                async for message in pubsub.listen():
                    if message["type"] != "message":
                        continue
                    self.apply(cache, message["data"])

            except RedisError as e:
                if self._logger:
                    self._logger.warning(
                        "cache_invalidation_subscription_lost",
                        channel=self._channel,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
            finally:
                try:
                    await pubsub.unsubscribe(self._channel)
                    await pubsub.aclose()
                except Exception as e:
                    if self._logger:
                        self._logger.warning("cache_invalidation_cleanup_failed", error=str(e))

            await asyncio.sleep(self._resubscribe_delay)

    def apply(self, cache: PermissionCache, data: Any) -> bool:
        """Apply one pub/sub payload to the local cache.

        Args:
            cache: Local cache to invalidate.
            data: Raw message data (bytes or str).

        Returns:
            bool: True if applied; False for this process's own or a
            malformed message.
        """
        try:
            payload = json.loads(data)
            origin = payload["origin"]
            key = payload["key"]
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            if self._logger:
                self._logger.warning("cache_invalidation_message_invalid", error=str(e))
            return False

        if origin == self._origin:
            return False
        if key is None:
            cache.clear_local()
        else:
            cache.invalidate_local(key)
        return True

    async def close(self) -> None:
        """Close the Redis client (after the listener is cancelled)."""
        await self._redis.aclose()
