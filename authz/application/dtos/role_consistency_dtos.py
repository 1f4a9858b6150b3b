"""Result DTOs for the role consistency verifier."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from authz.domain.enums import FixDirection


@dataclass(frozen=True, slots=True, kw_only=True)
class RoleConsistencyCheck:
    """Role comparison for one principal.

    Attributes:
        principal_id: Identity provider user id.
        consistent: True if both stores hold the same role value.
        identity_provider_role: Role in the identity provider profile.
        database_role: Role in the database record (None if missing).
        email: Email from either store.
        first_name: Given name from either store.
        last_name: Family name from either store.
        database_id: Database record id (None if missing).
        error: Reason the check is inconclusive (e.g., record missing).
    """

    principal_id: str
    consistent: bool
    identity_provider_role: str | None
    database_role: str | None
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    database_id: UUID | None = None
    error: str | None = None


@dataclass(slots=True, kw_only=True)
class RoleVerificationDetail:
    """One inconsistent or failed principal in a bulk verification.

    Attributes:
        principal_id: Identity provider user id.
        database_id: Database record id.
        email: Email address.
        name: Display name.
        identity_provider_role: Role in the identity provider (None on error).
        database_role: Role in the database.
        fixed: True if auto-fix healed the divergence.
        fix_direction: Direction applied when fixed.
        fix_error: Why auto-fix failed.
        error: Why the comparison itself failed.
    """

    principal_id: str
    database_id: UUID
    email: str | None
    name: str
    identity_provider_role: str | None
    database_role: str
    fixed: bool = False
    fix_direction: FixDirection | None = None
    fix_error: str | None = None
    error: str | None = None


@dataclass(slots=True, kw_only=True)
class RoleVerificationReport:
    """Bulk verification totals.

    The run succeeded even when `errors` is nonzero; inspect the counts.

    Attributes:
        total: Principals read from the database page.
        consistent: Principals whose roles matched.
        inconsistent: Principals whose roles diverged.
        errors: Principals that could not be compared.
        fixed: Divergences healed by auto-fix.
        details: Inconsistent and failed principals.
        timestamp: Run start time.
    """

    total: int = 0
    consistent: int = 0
    inconsistent: int = 0
    errors: int = 0
    fixed: int = 0
    details: list[RoleVerificationDetail] = field(default_factory=list)
    timestamp: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True, kw_only=True)
class RoleFixResult:
    """Outcome of healing one principal.

    Attributes:
        success: True if both stores now agree.
        principal_id: Identity provider user id.
        message: Human-readable outcome.
        consistent: Whether the stores agree after the call.
        role: Role both stores hold after a successful fix.
    """

    success: bool
    principal_id: str
    message: str
    consistent: bool
    role: str | None = None
