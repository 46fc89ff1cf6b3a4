"""Retry with exponential backoff for rate-limited external calls.

The policy only describes the schedule; ``attempt`` runs a coroutine function
under it and reports a tagged outcome instead of raising once the attempts
are exhausted, so callers decide which error to surface.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff schedule."""

    max_attempts: int = 3
    initial_delay: float = 15.0
    multiplier: float = 2.0
    max_delay: float = 60.0

    def delays(self) -> Iterator[float]:
        """Waits between consecutive attempts (max_attempts - 1 values)."""
        delay = self.initial_delay
        for _ in range(max(self.max_attempts - 1, 0)):
            yield min(delay, self.max_delay)
            delay = min(delay * self.multiplier, self.max_delay)


@dataclass
class RetryOutcome(Generic[T]):
    """Result of running a call under a retry policy."""

    succeeded: bool
    attempts: int
    value: T | None = None
    error: BaseException | None = None

    @property
    def exhausted(self) -> bool:
        return not self.succeeded


async def attempt(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    retry_on: tuple[type[BaseException], ...],
    *,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    label: str = "call",
) -> RetryOutcome[T]:
    """Run fn, retrying on the given exception types.

    Exceptions outside retry_on propagate immediately. After the last failed
    attempt the outcome carries the final error.
    """
    delays = policy.delays()
    attempts = 0

    while True:
        attempts += 1
        try:
            value = await fn()
            return RetryOutcome(succeeded=True, attempts=attempts, value=value)
        except retry_on as e:
            wait = next(delays, None)
            if wait is None:
                logger.warning(f"[retry] {label} failed after {attempts} attempts: {e}")
                return RetryOutcome(succeeded=False, attempts=attempts, error=e)
            logger.info(
                f"[retry] {label} rate limited, waiting {wait:g}s "
                f"({policy.max_attempts - attempts} retries left)"
            )
            await sleep(wait)
