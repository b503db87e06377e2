"""
Retry Policy with Exponential Backoff
Decides when a failed event is due for another attempt and when to give up
"""

import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

import structlog

from vehicle_data_receiver.models.failed_event import FailedEvent
from vehicle_data_receiver.store.base import StorageError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """
    Retry policy configuration

    Attributes:
        max_attempts: Failed attempts after which an event is quarantined
        base_delay: Delay in seconds after the first failure
        max_delay: Maximum delay in seconds
        multiplier: Multiplier for exponential backoff
        jitter: Whether to add random jitter to delays
    """

    max_attempts: int = 10
    base_delay: float = 60.0
    max_delay: float = 3600.0
    multiplier: float = 2.0
    jitter: bool = False

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must not be negative")

    def backoff_for(self, attempt_count: int) -> float:
        """Delay in seconds that must pass after the attempt_count-th failure"""
        return calculate_backoff(
            attempt=max(1, attempt_count),
            base_delay=self.base_delay,
            multiplier=self.multiplier,
            max_delay=self.max_delay,
            jitter=self.jitter,
        )

    def next_attempt_at(self, failed_event: FailedEvent) -> int:
        """Earliest epoch second at which the event may be retried"""
        return failed_event.attempted_at + int(self.backoff_for(failed_event.attempt_count))

    def is_due(self, failed_event: FailedEvent, now: int) -> bool:
        return now >= self.next_attempt_at(failed_event)

    def is_exhausted(self, attempt_count: int) -> bool:
        return attempt_count >= self.max_attempts


def calculate_backoff(
    attempt: int,
    base_delay: float,
    multiplier: float,
    max_delay: Optional[float] = None,
    jitter: bool = True,
) -> float:
    """
    Calculate backoff delay for retry attempt

    Args:
        attempt: Retry attempt number (1-indexed)
        base_delay: Base delay in seconds
        multiplier: Exponential multiplier
        max_delay: Maximum delay in seconds
        jitter: Whether to add random jitter

    Returns:
        Delay in seconds
    """
    # Exponential backoff: base_delay * (multiplier ^ (attempt - 1))
    delay = base_delay * (multiplier ** (attempt - 1))

    if max_delay is not None:
        delay = min(delay, max_delay)

    # ±25%
    if jitter:
        jitter_range = delay * 0.25
        delay = delay + random.uniform(-jitter_range, jitter_range)

    return max(0.0, delay)


def is_retryable_error(error: Exception) -> bool:
    """
    Classify an infrastructure error as retryable or permanent

    Args:
        error: Exception to classify

    Returns:
        True if error is retryable, False if permanent
    """
    if isinstance(error, (ConnectionError, TimeoutError)):
        return True

    error_str = str(error).lower()

    permanent_patterns = [
        "permission denied",
        "authentication failed",
        "password authentication",
        "syntax error",
        "does not exist",
    ]
    for pattern in permanent_patterns:
        if pattern in error_str:
            return False

    return isinstance(error, StorageError)


async def retry_with_policy(
    func: Callable[..., Awaitable[T]],
    policy: RetryPolicy,
    *args,
    **kwargs,
) -> T:
    """
    Execute an async function, retrying retryable errors with backoff

    Args:
        func: Async function to execute
        policy: Retry policy
        *args: Function arguments
        **kwargs: Function keyword arguments

    Returns:
        Function result

    Raises:
        Last exception if all retries fail or the error is permanent
    """
    for attempt in range(1, policy.max_attempts + 1):
        try:
            return await func(*args, **kwargs)

        except Exception as e:
            if not is_retryable_error(e) or attempt >= policy.max_attempts:
                raise

            delay = policy.backoff_for(attempt)

            logger.warning(
                "Retrying after error",
                attempt=attempt,
                max_attempts=policy.max_attempts,
                delay_seconds=round(delay, 2),
                error=str(e),
                function=getattr(func, "__name__", repr(func)),
            )

            await asyncio.sleep(delay)

    raise RuntimeError("retry_with_policy exhausted without result")
