"""Unit tests for the dependency container.

Tests cover:
- Identity provider backend selection and singleton behaviour
- Permission cache lifecycle (init, get, shutdown), with and without the
  Redis invalidation bus
- Per-key locks shared across services
- Permission request service wiring

Architecture:
- Container settings patched at the module level
- lru_cache factories cleared around each test
"""

import asyncio
from unittest.mock import AsyncMock, Mock, patch

import pytest

from authz.application.services import PermissionRequestService
from authz.core.container import (
    get_identity_provider,
    get_locks,
    get_permission_cache,
    get_permission_request_service,
    init_permission_cache,
    shutdown_permission_cache,
)
from authz.infrastructure.cache import PermissionCache
from authz.infrastructure.identity import ClerkIdentityProvider, InMemoryIdentityProvider

SETTINGS = "authz.core.container.infrastructure.settings"
BUILD_BUS = "authz.core.container.infrastructure._build_invalidation_bus"
GET_LOGGER = "authz.core.container.infrastructure.get_logger"


@pytest.fixture(autouse=True)
def clear_container_caches():
    get_identity_provider.cache_clear()
    get_locks.cache_clear()
    yield
    get_identity_provider.cache_clear()
    get_locks.cache_clear()


@pytest.mark.unit
class TestGetIdentityProvider:
    """Test get_identity_provider() backend selection."""

    def test_memory_backend(self):
        """Test the memory backend returns the in-memory adapter."""
        with patch(SETTINGS) as mock_settings:
            mock_settings.identity_provider_backend = "memory"

            provider = get_identity_provider()

        assert isinstance(provider, InMemoryIdentityProvider)

    def test_clerk_backend(self):
        """Test the clerk backend returns the Clerk client."""
        with patch(SETTINGS) as mock_settings:
            mock_settings.identity_provider_backend = "clerk"
            mock_settings.clerk_secret_key = "sk_test_123"
            mock_settings.clerk_api_base_url = "https://api.clerk.test/v1"
            mock_settings.identity_provider_timeout = 5.0

            provider = get_identity_provider()

        assert isinstance(provider, ClerkIdentityProvider)

    def test_clerk_backend_requires_secret(self):
        """Test the clerk backend refuses to start without a secret key."""
        with patch(SETTINGS) as mock_settings:
            mock_settings.identity_provider_backend = "clerk"
            mock_settings.clerk_secret_key = None

            with pytest.raises(RuntimeError, match="CLERK_SECRET_KEY"):
                get_identity_provider()

    def test_singleton(self):
        """Test repeated calls return the same instance."""
        with patch(SETTINGS) as mock_settings:
            mock_settings.identity_provider_backend = "memory"

            assert get_identity_provider() is get_identity_provider()


@pytest.mark.unit
class TestPermissionCacheLifecycle:
    """Test init/get/shutdown of the permission cache."""

    @pytest.mark.asyncio
    async def test_lifecycle(self):
        """Test the cache exists only between init and shutdown."""
        with pytest.raises(RuntimeError, match="not initialized"):
            get_permission_cache()

        cache = init_permission_cache()
        try:
            assert isinstance(cache, PermissionCache)
            assert get_permission_cache() is cache
            with pytest.raises(RuntimeError, match="already initialized"):
                init_permission_cache()
        finally:
            await shutdown_permission_cache()

        with pytest.raises(RuntimeError, match="not initialized"):
            get_permission_cache()

    @pytest.mark.asyncio
    async def test_shutdown_without_init(self):
        """Test shutdown is a no-op when nothing was initialized."""
        await shutdown_permission_cache()

        with pytest.raises(RuntimeError):
            get_permission_cache()

    @pytest.mark.asyncio
    async def test_redis_url_attaches_bus_and_listener(self):
        """Should publish invalidations and run the listener when Redis is configured."""
        bus = Mock()
        bus.publish = AsyncMock()
        bus.close = AsyncMock()
        listening = asyncio.Event()

        async def listen(cache):
            listening.set()
            await asyncio.Event().wait()

        bus.listen = listen

        with (
            patch(SETTINGS) as mock_settings,
            patch(BUILD_BUS, return_value=bus),
            patch(GET_LOGGER, return_value=Mock()),
        ):
            mock_settings.redis_url = "redis://localhost:6379/0"
            mock_settings.permission_cache_ttl_seconds = 120
            mock_settings.permission_cache_max_size = 500
            mock_settings.permission_cache_enabled = True
            cache = init_permission_cache()
            try:
                await listening.wait()
                await cache.invalidate("u1")
                bus.publish.assert_awaited_once_with("user:u1")
            finally:
                await shutdown_permission_cache()

        bus.close.assert_awaited_once()
        bus.publish.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_without_redis_url_warns_outside_development(self):
        """Should warn that invalidations stay in one process."""
        logger = Mock()
        with (
            patch(SETTINGS) as mock_settings,
            patch(GET_LOGGER, return_value=logger),
        ):
            mock_settings.redis_url = None
            mock_settings.is_development = False
            mock_settings.permission_cache_ttl_seconds = 120
            mock_settings.permission_cache_max_size = 500
            mock_settings.permission_cache_enabled = True
            init_permission_cache()
            try:
                warnings = [call.args[0] for call in logger.warning.call_args_list]
                assert "permission_cache_invalidation_local_only" in warnings
            finally:
                await shutdown_permission_cache()


@pytest.mark.unit
class TestGetLocks:
    """Test get_locks() singleton."""

    def test_shared_instance(self):
        """Test every caller shares one lock registry."""
        assert get_locks() is get_locks()


@pytest.mark.unit
class TestGetPermissionRequestService:
    """Test the permission request service factory."""

    @pytest.mark.asyncio
    async def test_grant_services_share_one_permission_service(self):
        """Should route every approval path through the same PermissionService."""
        init_permission_cache()
        try:
            with patch(SETTINGS) as mock_settings:
                mock_settings.identity_provider_backend = "memory"
                service = await get_permission_request_service(
                    session=Mock(), audit=AsyncMock()
                )
        finally:
            await shutdown_permission_cache()

        assert isinstance(service, PermissionRequestService)
        assert service._bundles._permissions is service._permissions
        assert service._resources._permissions is service._permissions
        assert service._locks is get_locks()
