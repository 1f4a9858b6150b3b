"""Unit tests for ConsoleAdapter (structured console logging).

Tests cover:
- LoggerProtocol methods (debug, info, warning, error, critical)
- Error enrichment with error_type and error_message
- Context binding
- Renderer selection

Architecture:
- Unit tests with mocked structlog
- Tests protocol compliance
"""

from unittest.mock import MagicMock, patch

import pytest

from authz.infrastructure.logging import ConsoleAdapter

STRUCTLOG = "authz.infrastructure.logging.console_adapter.structlog"


@pytest.fixture
def mock_structlog():
    with patch(STRUCTLOG) as mock:
        mock.get_logger.return_value = MagicMock()
        yield mock


@pytest.mark.unit
class TestConsoleAdapterLogging:
    """Test ConsoleAdapter logging methods."""

    @pytest.mark.parametrize("level", ["debug", "info", "warning"])
    def test_logs_message_with_context(self, mock_structlog, level):
        """Test each level forwards the event and structured context."""
        adapter = ConsoleAdapter()

        getattr(adapter, level)("permission_check", principal="user:u1", permission="listings:view_own")

        getattr(mock_structlog.get_logger.return_value, level).assert_called_once_with(
            "permission_check", principal="user:u1", permission="listings:view_own"
        )

    def test_error_adds_exception_details(self, mock_structlog):
        """Test error() adds error_type and error_message for an exception."""
        adapter = ConsoleAdapter()

        adapter.error("role_change_failed", error=ValueError("bad role"), principal_id="u1")

        mock_structlog.get_logger.return_value.error.assert_called_once_with(
            "role_change_failed",
            principal_id="u1",
            error_type="ValueError",
            error_message="bad role",
        )

    def test_error_without_exception(self, mock_structlog):
        """Test error() logs only the given context when no exception is passed."""
        adapter = ConsoleAdapter()

        adapter.error("permission_grant_failed", error_code="identity_provider_unavailable")

        mock_structlog.get_logger.return_value.error.assert_called_once_with(
            "permission_grant_failed", error_code="identity_provider_unavailable"
        )

    def test_critical_adds_exception_details(self, mock_structlog):
        """Test critical() enriches the event like error()."""
        adapter = ConsoleAdapter()

        adapter.critical("database_unreachable", error=ConnectionError("refused"))

        mock_structlog.get_logger.return_value.critical.assert_called_once_with(
            "database_unreachable", error_type="ConnectionError", error_message="refused"
        )


@pytest.mark.unit
class TestConsoleAdapterContextBinding:
    """Test context binding."""

    def test_bind_returns_new_adapter_with_bound_logger(self, mock_structlog):
        """Test bind() wraps the structlog bound logger in a new adapter."""
        base_logger = mock_structlog.get_logger.return_value
        bound_logger = MagicMock()
        base_logger.bind.return_value = bound_logger
        adapter = ConsoleAdapter()

        bound = adapter.bind(job="temporary_permission_expiration")
        bound.info("expiration_job_started")

        assert bound is not adapter
        base_logger.bind.assert_called_once_with(job="temporary_permission_expiration")
        bound_logger.info.assert_called_once_with("expiration_job_started")
        base_logger.info.assert_not_called()

    def test_with_context_is_bind(self, mock_structlog):
        """Test with_context() behaves like bind()."""
        adapter = ConsoleAdapter()

        adapter.with_context(request_id="req_1")

        mock_structlog.get_logger.return_value.bind.assert_called_once_with(request_id="req_1")


@pytest.mark.unit
class TestConsoleAdapterConfiguration:
    """Test structlog configuration."""

    def test_json_renderer(self, mock_structlog):
        """Test use_json selects the JSON renderer."""
        ConsoleAdapter(use_json=True)

        mock_structlog.processors.JSONRenderer.assert_called_once()
        mock_structlog.dev.ConsoleRenderer.assert_not_called()

    def test_console_renderer(self, mock_structlog):
        """Test the default selects the colored console renderer."""
        ConsoleAdapter()

        mock_structlog.dev.ConsoleRenderer.assert_called_once_with(colors=True)
        mock_structlog.configure.assert_called_once()
