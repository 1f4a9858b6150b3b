"""Clock adapters."""

from authz.infrastructure.time.system_clock import SystemClock

__all__ = ["SystemClock"]
