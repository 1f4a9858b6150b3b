"""Sentinel for unrestricted resource access."""

from enum import Enum


class ResourceScope(str, Enum):
    """Resource scope sentinel.

    Returned by resource lookups when the principal holds the permission
    role-wide or explicitly. Callers must treat ALL differently from an empty
    set: empty means no resource-scoped access, ALL means unrestricted.
    """

    ALL = "*"
