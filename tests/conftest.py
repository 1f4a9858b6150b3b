"""Pytest configuration for async testing.

This configuration ensures:
1. Async tests run in isolated event loops (pytest-asyncio, function scope)
2. Time is pinned through an injectable clock, never the wall clock
3. Database fixtures get a fresh SQLite file per test
4. The permission cache is constructed per test, never shared
"""

import inspect
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio

from authz.core.result import Success
from authz.infrastructure.cache import PermissionCache
from authz.infrastructure.identity import InMemoryIdentityProvider
from authz.infrastructure.persistence.database import Database


# Configure pytest-asyncio
pytest_plugins = ("pytest_asyncio",)


FIXED_NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=UTC)


class FixedClock:
    """Clock pinned to a point in time that tests move explicitly.

    Usage:
        clock = FixedClock()
        clock.advance(timedelta(hours=2))
    """

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self._now = now

    def now(self) -> datetime:
        return self._now

    def set(self, now: datetime) -> None:
        self._now = now

    def advance(self, delta: timedelta) -> None:
        self._now = self._now + delta


@pytest.fixture
def clock() -> FixedClock:
    """Clock pinned to FIXED_NOW."""
    return FixedClock()


@pytest.fixture
def mock_logger() -> Mock:
    """Mock LoggerProtocol (sync methods)."""
    logger = Mock()
    logger.bind.return_value = logger
    logger.with_context.return_value = logger
    return logger


@pytest.fixture
def mock_audit() -> AsyncMock:
    """Mock PermissionAuditProtocol that records successfully."""
    audit = AsyncMock()
    audit.record.return_value = Success(value=None)
    audit.list_permission_audit_log.return_value = Success(value=[])
    return audit


@pytest.fixture
def identity_provider() -> InMemoryIdentityProvider:
    """Empty in-memory identity provider."""
    return InMemoryIdentityProvider()


@pytest.fixture
def permission_cache(clock: FixedClock, mock_logger: Mock) -> PermissionCache:
    """Fresh permission cache driven by the fixed clock."""
    return PermissionCache(ttl_seconds=120, max_size=500, clock=clock, logger=mock_logger)


@pytest_asyncio.fixture
async def test_database(tmp_path):
    """Fresh SQLite database (file-backed so sessions share data)."""
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'authz.db'}")
    await database.create_all()
    yield database
    await database.drop_all()
    await database.close()


@pytest_asyncio.fixture
async def db_session(test_database: Database):
    """Session on the test database (committed on exit)."""
    async with test_database.get_session() as session:
        yield session


# Pytest markers for different test types
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests with mocked dependencies")
    config.addinivalue_line(
        "markers", "integration: Integration tests with a real (SQLite) database"
    )


# Test execution configuration
def pytest_collection_modifyitems(config, items):
    """Automatically add asyncio marker to async test functions.

    This ensures all async tests are properly marked even if
    the developer forgets to add @pytest.mark.asyncio.
    """
    for item in items:
        if inspect.iscoroutinefunction(getattr(item, "function", None)):
            item.add_marker(pytest.mark.asyncio)
