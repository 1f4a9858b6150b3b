"""Lifecycle states of a permission request."""

from enum import Enum


class PermissionRequestStatus(str, Enum):
    """Permission request status.

    Only PENDING requests can be approved, denied or canceled; every other
    state is final. A temporary request whose requested expiry passes before
    review ends EXPIRED.
    """

    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    CANCELED = "canceled"
    EXPIRED = "expired"
