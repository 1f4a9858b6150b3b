"""Logging adapters."""

from authz.infrastructure.logging.console_adapter import ConsoleAdapter

__all__ = ["ConsoleAdapter"]
