"""Batch fetch with bounded retry.

Shared by the expiration reconcilers. Only the fetch of a batch is retried;
per-item writes are not, since a failed item is counted and picked up by the
next run.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from authz.core.errors import DomainError
from authz.core.result import Failure, Result
from authz.domain.protocols import LoggerProtocol

T = TypeVar("T")


async def fetch_with_retry(
    fetch: Callable[[], Awaitable[Result[T, DomainError]]],
    *,
    max_retries: int,
    backoff_seconds: float,
    logger: LoggerProtocol,
    job: str,
) -> Result[T, DomainError]:
    """Call `fetch` until it succeeds or the retries run out.

    Waits `backoff_seconds * 2**attempt` between attempts.

    Args:
        fetch: Batch fetch returning a Result.
        max_retries: Retries after the first attempt.
        backoff_seconds: Base backoff.
        logger: Logger for retry events.
        job: Job name for log context.

    Returns:
        The first Success, or the last Failure.
    """
    attempt = 0
    while True:
        result = await fetch()
        if not isinstance(result, Failure) or attempt >= max_retries:
            return result

        delay = backoff_seconds * 2**attempt
        logger.warning(
            "batch_fetch_retry",
            job=job,
            attempt=attempt + 1,
            max_retries=max_retries,
            delay_seconds=delay,
            error_code=result.error.code.value,
            error_message=result.error.message,
        )
        await asyncio.sleep(delay)
        attempt += 1
