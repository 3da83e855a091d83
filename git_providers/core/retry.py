"""
Retry Utilities
===============

Retry logic with exponential backoff for REST calls.

Features:
- Exponential backoff with a delay cap
- Jitter to prevent thundering herd
- Honors server retry-after hints (up to the cap)
- Only retries errors the taxonomy marks as retryable
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from .exceptions import RateLimitedError, is_retryable

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_attempts: int = 3
    initial_delay: float = 1.0  # seconds
    max_delay: float = 30.0  # seconds
    backoff_multiplier: float = 2.0
    jitter: bool = True  # Add randomness to prevent thundering herd
    jitter_factor: float = 0.25  # Max jitter as fraction of delay

    def calculate_delay(self, attempt: int, retry_after: float | None = None) -> float:
        """
        Calculate delay before the next attempt.

        Args:
            attempt: Number of the attempt that just failed (0-indexed)
            retry_after: Server-provided hint in seconds, if any

        Returns:
            Delay in seconds
        """
        delay = self.initial_delay * (self.backoff_multiplier**attempt)

        if self.jitter:
            jitter_range = delay * self.jitter_factor
            delay += random.uniform(-jitter_range, jitter_range)
            delay = max(0.1, delay)  # Ensure minimum delay

        if retry_after is not None and retry_after > delay:
            delay = retry_after

        return min(delay, self.max_delay)


def should_retry(error: Exception, config: RetryConfig, attempt: int) -> bool:
    """
    Determine if an operation should be retried.

    Args:
        error: The exception that occurred
        config: Retry configuration
        attempt: Number of attempts made so far (1-indexed)

    Returns:
        True if should retry, False otherwise
    """
    if attempt >= config.max_attempts:
        return False
    return is_retryable(error)


async def call_with_retry(
    func: Callable[[], Awaitable[T]],
    config: RetryConfig,
    description: str = "request",
) -> T:
    """
    Await ``func()`` until it succeeds or the retry budget is exhausted.

    Non-retryable errors propagate on the first occurrence. When the budget
    runs out the last error is raised; a ``RateLimitedError`` carries the
    last retry-after hint observed across all attempts.
    """
    attempt = 0
    last_retry_after: float | None = None

    while True:
        try:
            return await func()
        except Exception as e:
            attempt += 1

            if isinstance(e, RateLimitedError):
                if e.retry_after is not None:
                    last_retry_after = e.retry_after
                elif last_retry_after is not None:
                    e.retry_after = last_retry_after

            if not should_retry(e, config, attempt):
                if is_retryable(e):
                    logger.warning(
                        f"{description} failed after {attempt} attempts: {e}",
                        extra={"attempts": attempt, "error_code": type(e).__name__},
                    )
                raise

            delay = config.calculate_delay(
                attempt - 1,
                retry_after=e.retry_after if isinstance(e, RateLimitedError) else None,
            )
            logger.info(
                f"{description} failed, retrying in {delay:.1f}s "
                f"(attempt {attempt}/{config.max_attempts}): {e}",
                extra={"attempt": attempt, "delay": delay},
            )
            await asyncio.sleep(delay)


API_RETRY_CONFIG = RetryConfig(
    max_attempts=3,
    initial_delay=1.0,
    max_delay=30.0,
)
