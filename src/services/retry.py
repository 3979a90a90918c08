"""
Retry with exponential backoff, shared by the source adapter and the summarizer.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from core.errors import RateLimitError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


def backoff_delay(
    attempt: int,
    initial_delay: float,
    error: Optional[BaseException] = None,
) -> float:
    """
    Delay after the given zero-based attempt failed.

    Rate-limited failures wait their retry-after when one was given and
    twice the computed backoff otherwise.
    """
    delay = initial_delay * (2 ** attempt)
    if isinstance(error, RateLimitError):
        if error.retry_after is not None:
            return error.retry_after
        return delay * 2
    return delay


async def retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    *,
    sleep: Sleep = asyncio.sleep,
    label: str = "operation",
) -> T:
    """
    Await operation() up to max_attempts times.

    Errors whose `retryable` attribute is False are raised immediately.
    When every attempt fails the last error is re-raised.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    last_exception: Optional[BaseException] = None

    for attempt in range(max_attempts):
        try:
            return await operation()
        except Exception as e:
            last_exception = e
            if not getattr(e, "retryable", True):
                raise
            if attempt == max_attempts - 1:
                break

            delay = backoff_delay(attempt, initial_delay, e)
            logger.warning(
                f"{label}: attempt {attempt + 1}/{max_attempts} failed ({e!r}), retrying in {delay:.1f}s"
            )
            await sleep(delay)

    logger.warning(f"{label}: giving up after {max_attempts} attempts")
    raise last_exception
