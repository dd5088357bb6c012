"""
Retry with exponential backoff for async operations.

The policy is a plain value so it can be tested on its own and configured
from settings; retry_async is the combinator that consumes it.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from loguru import logger

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    How many times to try an operation and how long to wait in between.

    delay_before(n) is the wait after failed attempt n (1-based):
    min(base_delay * 2^(n-1), max_delay). With the defaults: 1s, 2s.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 5.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def delay_before(self, attempt: int) -> float:
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)

    @classmethod
    def from_settings(cls, settings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.sync_max_attempts,
            base_delay=settings.sync_base_delay_seconds,
            max_delay=settings.sync_max_delay_seconds,
        )


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    description: str = "operation",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Run operation until it succeeds or the policy is exhausted.

    Args:
        operation: Zero-argument coroutine factory; called once per attempt
        policy: Attempts and backoff schedule
        description: Label used in log messages
        sleep: Awaitable sleep (injectable for tests)

    Returns:
        Whatever the first successful attempt returned

    Raises:
        The last exception raised by operation once all attempts failed
    """
    last_error: Optional[Exception] = None

    for attempt in range(1, policy.max_attempts + 1):
        try:
            return await operation()
        except Exception as e:
            last_error = e
            logger.warning(
                f"Attempt {attempt} of {description} failed: {e}",
                attempt=attempt,
                max_attempts=policy.max_attempts,
            )

            if attempt < policy.max_attempts:
                await sleep(policy.delay_before(attempt))

    raise last_error
