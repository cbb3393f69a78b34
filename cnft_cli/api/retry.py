"""Retry logic with exponential backoff for read-side API calls."""

import asyncio
import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

import aiohttp

from .error import (
    ServerError,
    RateLimitedError,
    HttpError,
    RetryExhaustedError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Jitter(str, Enum):
    """How the computed delay is randomized."""

    FULL = "full"
    NONE = "none"


@dataclass
class BackoffPolicy:
    """Configuration for retry behavior. Delays are in seconds."""

    starting_delay: float = 1.0
    max_delay: float = 10.0
    multiplier: float = 2.0
    max_attempts: int = 5
    jitter: Jitter = Jitter.FULL

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.starting_delay < 0 or self.max_delay < 0:
            raise ValueError("delays cannot be negative")

    @classmethod
    def default(cls) -> "BackoffPolicy":
        """Policy used by the paginated fetcher."""
        return cls()

    @classmethod
    def no_delay(cls, max_attempts: int = 5) -> "BackoffPolicy":
        return cls(starting_delay=0.0, max_delay=0.0, max_attempts=max_attempts)


def is_retryable(error: Exception) -> bool:
    """Check if a failed DAS call is worth repeating.

    Rate limits, server-side failures and transport errors are transient.
    Bad parameters, rejected credentials, missing assets and unrecognized
    JSON-RPC errors fail the same way on every attempt.
    """
    if isinstance(error, (ServerError, RateLimitedError, HttpError)):
        return True
    # raw transport errors from operations that bypass the client
    return isinstance(error, (aiohttp.ClientError, asyncio.TimeoutError, ConnectionError))



def calculate_delay(attempt: int, policy: BackoffPolicy) -> float:
    """Delay before retrying after the zero-based `attempt` failed.

    Exponential: starting_delay * multiplier^attempt, capped at max_delay.
    Full jitter draws uniformly from [0, capped delay].
    """
    delay = min(policy.max_delay, policy.starting_delay * (policy.multiplier**attempt))
    if policy.jitter is Jitter.FULL:
        return random.uniform(0, delay)
    return delay


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    policy: Optional[BackoffPolicy] = None,
    should_retry: Optional[Callable[[Exception], bool]] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run `operation` until it succeeds or the attempt budget is spent.

    Only idempotent reads should be wrapped. Errors rejected by
    `should_retry` propagate immediately.

    Raises:
        RetryExhaustedError: After `policy.max_attempts` consecutive failures
    """
    policy = policy or BackoffPolicy.default()

    for attempt in range(policy.max_attempts):
        try:
            return await operation()
        except Exception as e:
            if should_retry is not None and not should_retry(e):
                raise

            if attempt + 1 >= policy.max_attempts:
                logger.error(f"Giving up after {policy.max_attempts} attempts: {e}")
                raise RetryExhaustedError(policy.max_attempts, e) from e

            delay = calculate_delay(attempt, policy)
            logger.warning(
                f"Attempt {attempt + 1}/{policy.max_attempts} failed: {e}; "
                f"retrying in {delay:.2f}s"
            )
            await sleep(delay)

    # Unreachable: the loop either returns or raises
    raise RuntimeError("Unexpected retry loop exit")
