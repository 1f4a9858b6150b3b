"""Core enums package.

Usage:
    from authz.core.enums import Environment, ErrorCode
"""

from authz.core.enums.environment import Environment
from authz.core.enums.error_code import ErrorCode

__all__ = ["Environment", "ErrorCode"]
