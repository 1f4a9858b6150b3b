"""Cooperative cancellation for batch jobs.

Jobs check the token between batches, never mid-item, and return partial
statistics when it trips.
"""

from datetime import datetime

from authz.domain.protocols import ClockProtocol


class CancellationToken:
    """Cancellation flag with an optional deadline.

    Example:
        >>> token = CancellationToken(deadline=clock.now() + timedelta(minutes=5), clock=clock)
        >>> result = await job.run(cancellation=token)
    """

    def __init__(
        self,
        *,
        deadline: datetime | None = None,
        clock: ClockProtocol | None = None,
    ) -> None:
        if deadline is not None and clock is None:
            raise ValueError("A clock is required when a deadline is set")
        self._cancelled = False
        self._deadline = deadline
        self._clock = clock

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def deadline(self) -> datetime | None:
        return self._deadline

    @property
    def is_cancelled(self) -> bool:
        """True once cancel() was called or the deadline has passed."""
        if self._cancelled:
            return True
        if self._deadline is not None and self._clock.now() >= self._deadline:
            return True
        return False
