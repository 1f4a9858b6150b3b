"""Run statistics for the expiration reconcilers."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any


@dataclass(slots=True, kw_only=True)
class ExpirationRunResult:
    """Terminal statistics of one reconciler run.

    A run with a nonzero error count still ran to completion; callers must
    inspect `errors`, not only `aborted`.

    Attributes:
        processed: Items examined.
        expired_found: Items holding at least one expired grant.
        updated: Items written by this run.
        errors: Per-item failures plus a failed batch fetch.
        error_details: One entry per failure (`batch=True` for fetch failures).
        aborted: True if a batch fetch failed after retries.
        cancelled: True if a cancellation or deadline stopped the run.
        started_at: Run start.
        finished_at: Run end.
    """

    processed: int = 0
    expired_found: int = 0
    updated: int = 0
    errors: int = 0
    error_details: list[dict[str, Any]] = field(default_factory=list)
    aborted: bool = False
    cancelled: bool = False
    started_at: datetime | None = None
    finished_at: datetime | None = None

    def add_error(self, **detail: Any) -> None:
        self.errors += 1
        self.error_details.append(detail)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
