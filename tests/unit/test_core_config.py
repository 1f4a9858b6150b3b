"""
Unit tests for configuration management (flat Settings).

Tests cover:
- Default values
- Loading from environment variables
- Validation (backend name, cache TTL, sizes, batch size, URLs)
- Environment detection
"""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from authz.core.config import Settings, get_settings
from authz.core.enums import Environment


class TestSettingsDefaults:
    """Test default values."""

    def test_defaults(self):
        """Test defaults apply when no environment is set."""
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings()

        assert settings.environment == Environment.DEVELOPMENT
        assert settings.identity_provider_backend == "clerk"
        assert settings.clerk_api_base_url == "https://api.clerk.com/v1"
        assert settings.permission_cache_enabled is True
        assert settings.permission_cache_ttl_seconds == 120
        assert settings.permission_cache_max_size == 500
        assert settings.expiration_batch_size == 100
        assert settings.expiration_max_fetch_retries == 2
        assert settings.role_verification_limit == 100
        assert settings.redis_url is None


class TestSettingsFromEnvironment:
    """Test environment variable loading."""

    def test_reads_environment(self):
        """Test values are read case-insensitively from the environment."""
        env_values = {
            "ENVIRONMENT": "testing",
            "IDENTITY_PROVIDER_BACKEND": "Memory",
            "PERMISSION_CACHE_TTL_SECONDS": "30",
            "EXPIRATION_BATCH_SIZE": "25",
            "CLERK_API_BASE_URL": "https://api.clerk.test/v1/",
            "REDIS_URL": "redis://redis:6379/0",
        }
        with patch.dict(os.environ, env_values, clear=True):
            get_settings.cache_clear()
            settings = get_settings()
        get_settings.cache_clear()

        assert settings.is_testing
        assert settings.identity_provider_backend == "memory"
        assert settings.permission_cache_ttl_seconds == 30
        assert settings.expiration_batch_size == 25
        assert settings.clerk_api_base_url == "https://api.clerk.test/v1"
        assert settings.redis_url == "redis://redis:6379/0"

    def test_get_settings_is_cached(self):
        """Test get_settings() returns the same instance."""
        get_settings.cache_clear()

        assert get_settings() is get_settings()


class TestSettingsValidation:
    """Test Settings field validation."""

    @pytest.mark.parametrize(
        "field,value",
        [
            ("identity_provider_backend", "okta"),
            ("permission_cache_ttl_seconds", 0),
            ("permission_cache_ttl_seconds", 3601),
            ("permission_cache_max_size", 0),
            ("role_verification_limit", 0),
            ("expiration_batch_size", 0),
            ("expiration_batch_size", 501),
        ],
    )
    def test_rejects_invalid(self, field, value):
        """Test out-of-range values are rejected."""
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValidationError):
                Settings(**{field: value})


class TestEnvironmentDetection:
    """Test environment helper properties."""

    @pytest.mark.parametrize(
        "environment,flag",
        [
            ("development", "is_development"),
            ("testing", "is_testing"),
            ("ci", "is_ci"),
            ("production", "is_production"),
        ],
    )
    def test_flags(self, environment, flag):
        """Test exactly one flag is set per environment."""
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(environment=environment)

        flags = ["is_development", "is_testing", "is_ci", "is_production"]
        assert [getattr(settings, f) for f in flags] == [f == flag for f in flags]
