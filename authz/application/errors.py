"""Conversion of persistence exceptions to PermissionStoreError.

Repositories raise SQLAlchemy exceptions; services convert them here, at their
boundary, so callers only ever see Result values.
"""

from sqlalchemy.exc import (
    DBAPIError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from authz.core.enums import ErrorCode
from authz.core.result import Failure
from authz.domain.errors import PermissionStoreError


def is_transient(error: SQLAlchemyError) -> bool:
    """Connection-level failures are retryable; constraint or data errors are not."""
    if isinstance(error, PoolTimeoutError):
        return True
    if isinstance(error, DBAPIError):
        return error.connection_invalidated or isinstance(
            error, (OperationalError, InterfaceError)
        )
    return False


def store_failure(error: SQLAlchemyError, operation: str) -> Failure[PermissionStoreError]:
    """Wrap a SQLAlchemy exception as a database PermissionStoreError.

    Args:
        error: Exception raised by a repository.
        operation: Operation name for diagnostics.

    Returns:
        Failure(PermissionStoreError) with store="database".
    """
    return Failure(
        error=PermissionStoreError(
            code=ErrorCode.PERMISSION_STORE_UNAVAILABLE,
            message=f"Database error during {operation}: {type(error).__name__}",
            store="database",
            is_transient=is_transient(error),
            details={"operation": operation, "error_type": type(error).__name__},
        )
    )
