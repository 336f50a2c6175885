"""
Retry policy for remote fetches.

Only transient failures (RemoteUnavailableError) are retried, with
exponential backoff. Anything else fails on the first attempt.
"""

from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from payback.config import SyncSettings, get_settings
from payback.services.remote.interface import RemoteUnavailableError

T = TypeVar("T")


async def call_with_retry(
    operation: Callable[[], Awaitable[T]],
    settings: Optional[SyncSettings] = None,
) -> T:
    """
    Run an async remote call, retrying transient failures.

    Raises:
        The last error once attempts are exhausted, or the first
        non-retryable error.
    """
    settings = settings or get_settings().sync
    retrying = AsyncRetrying(
        stop=stop_after_attempt(settings.retry_attempts),
        wait=wait_exponential(
            multiplier=1,
            min=settings.retry_min_wait_s,
            max=settings.retry_max_wait_s,
        ),
        retry=retry_if_exception_type(RemoteUnavailableError),
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            return await operation()
    raise AssertionError("unreachable")  # pragma: no cover
