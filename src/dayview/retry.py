"""
Retry utilities - exponential backoff for coroutine calls.
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from .errors import RETRYABLE_ERRORS

logger = logging.getLogger(__name__)

T = TypeVar("T")


def backoff_delay(attempt: int, base_delay: float = 1.0, max_delay: float = 30.0) -> float:
    """Delay before retry number ``attempt`` (0-based): base doubled per attempt, capped."""
    return min(base_delay * (2**attempt), max_delay)


async def call_with_backoff(
    func: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    retry_on: tuple = RETRYABLE_ERRORS,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    label: str = "call",
) -> T:
    """
    Await ``func()``, retrying on ``retry_on`` errors with exponential backoff.

    Args:
        func: Zero-argument coroutine factory, invoked once per attempt
        max_retries: Maximum number of retries after the first attempt
        base_delay: Initial delay between retries in seconds
        max_delay: Maximum delay between retries in seconds
        retry_on: Exception types worth retrying; anything else propagates at once
        sleep: Awaitable sleep, replaceable in tests
        label: Name used in log messages

    Returns:
        The result of the first successful attempt
    """
    attempt = 0
    while True:
        try:
            result = await func()
        except retry_on as e:
            if attempt >= max_retries:
                logger.error(f"Max retries ({max_retries}) exceeded for {label}. Final error: {e}")
                raise
            delay = backoff_delay(attempt, base_delay, max_delay)
            logger.warning(
                f"Error in {label} (attempt {attempt + 1}/{max_retries + 1}): "
                f"{type(e).__name__}: {e}. Retrying in {delay:.1f} seconds..."
            )
            await sleep(delay)
            attempt += 1
            continue

        if attempt > 0:
            logger.info(f"Retry successful for {label} after {attempt} attempts")
        return result
