"""LoggerProtocol definition for structured logging.

Backend-agnostic structured logging port. Messages are snake_case event names
and all variable data goes into key-value context.

Log Levels:
    - DEBUG: Cache hits/misses, per-item batch decisions
    - INFO: Grants, revocations, role changes, batch run summaries
    - WARNING: Fail-closed denials, audit write failures, divergence found
    - ERROR: Store failures surfaced to callers
    - CRITICAL: Reserved for unrecoverable startup failures

Usage:
    from authz.core.container import get_logger

    logger = get_logger()
    logger.info("resource_permission_granted", principal_id=pid, permission=perm)

    job_logger = logger.bind(job="resource_permission_expiration")
    job_logger.info("batch_processed", processed=100)
"""

from __future__ import annotations

from typing import Any, Protocol


class LoggerProtocol(Protocol):
    """Protocol for structured logging adapters.

    All logging calls MUST be structured: event name + key-value context.
    Permission identifiers and principal ids are safe to log; identity
    provider secrets never are.
    """

    def debug(self, message: str, /, **context: Any) -> None:
        """Log a debug-level event.

        Args:
            message: Event name (snake_case).
            **context: Structured key-value context fields.
        """
        ...

    def info(self, message: str, /, **context: Any) -> None:
        """Log an info-level event.

        Args:
            message: Event name (snake_case).
            **context: Structured key-value context fields.
        """
        ...

    def warning(self, message: str, /, **context: Any) -> None:
        """Log a warning-level event.

        Args:
            message: Event name (snake_case).
            **context: Structured key-value context fields.
        """
        ...

    def error(
        self, message: str, /, *, error: Exception | None = None, **context: Any
    ) -> None:
        """Log an error-level event with optional exception details.

        Args:
            message: Event name (snake_case).
            error: Optional exception instance; implementation may include
                error_type and error_message fields.
            **context: Structured key-value context fields.
        """
        ...

    def critical(
        self, message: str, /, *, error: Exception | None = None, **context: Any
    ) -> None:
        """Log a critical-level event.

        Args:
            message: Event name (snake_case).
            error: Optional exception instance.
            **context: Structured key-value context fields.
        """
        ...

    def bind(self, **context: Any) -> "LoggerProtocol":
        """Return new logger with permanently bound context.

        The original logger instance remains unchanged.

        Args:
            **context: Context to bind to all future logs.

        Returns:
            New logger instance with bound context.
        """
        ...

    def with_context(self, **context: Any) -> "LoggerProtocol":
        """Alias for bind()."""
        ...
