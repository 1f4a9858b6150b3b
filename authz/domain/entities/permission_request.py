"""Permission request entity (self-service access requests)."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from authz.core.result import Failure, Result, Success
from authz.domain.enums import PermissionRequestStatus


@dataclass
class PermissionRequest:
    """A principal's request for a permission or a bundle.

    Exactly one of `permission` or `bundle_id` is set. A permission request
    may be scoped to one resource instance. `expires_at` marks a temporary
    request; None asks for a permanent grant.

    Attributes:
        id: Request identifier.
        principal_id: Identity provider user id of the requester.
        justification: Requester's justification.
        status: Lifecycle state.
        requested_at: Submission time.
        permission: Requested permission identifier.
        bundle_id: Requested bundle.
        resource_type: Resource kind for a resource-scoped request.
        resource_id: Resource instance for a resource-scoped request.
        expires_at: Requested expiry of the grant.
        reviewed_by: Actor that approved, denied or canceled the request.
        reviewed_at: Time of that decision.
        review_notes: Reviewer notes.

    Example:
        >>> request.is_pending
        True
    """

    id: UUID
    principal_id: str
    justification: str
    status: PermissionRequestStatus
    requested_at: datetime
    permission: str | None = None
    bundle_id: UUID | None = None
    resource_type: str | None = None
    resource_id: str | None = None
    expires_at: datetime | None = None
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    review_notes: str | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == PermissionRequestStatus.PENDING

    @property
    def is_temporary(self) -> bool:
        return self.expires_at is not None

    @property
    def is_resource_scoped(self) -> bool:
        return self.resource_type is not None

    def close(
        self,
        status: PermissionRequestStatus,
        *,
        reviewed_by: str,
        reviewed_at: datetime,
        notes: str | None = None,
    ) -> Result[None, str]:
        """Move a pending request to a final state.

        Returns:
            Success(None): Transition successful.
            Failure(error): The request is no longer pending, or `status`
                is PENDING.
        """
        if not self.is_pending:
            return Failure(error=f"Request {self.id} is already {self.status.value}")
        if status == PermissionRequestStatus.PENDING:
            return Failure(error="A request cannot be closed as pending")

        self.status = status
        self.reviewed_by = reviewed_by
        self.reviewed_at = reviewed_at
        self.review_notes = notes
        return Success(value=None)
