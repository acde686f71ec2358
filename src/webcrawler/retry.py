"""Bounded retry with linear backoff around a fetch call."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from webcrawler.exceptions import FetchError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RetryCallback = Callable[[int, FetchError, float], None]


def backoff_delay(attempt: int, base_delay_ms: int) -> float:
    """Seconds to wait after failed attempt number `attempt` (1-indexed)."""
    return base_delay_ms * attempt / 1000


async def with_retry(
    fetch_call: Callable[[], Awaitable[T]],
    max_retries: int,
    base_delay_ms: int,
    on_retry: Optional[RetryCallback] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Call `fetch_call` until it succeeds or retries run out.

    A permanently failing call is attempted max_retries + 1 times. After
    failed attempt n the controller waits base_delay_ms * n. Only
    FetchError is retried; anything else propagates immediately. State
    is local to one call, so retries for one URL never delay another.

    Args:
        fetch_call: Zero-argument coroutine factory performing one attempt
        max_retries: Retries after the first attempt
        base_delay_ms: Backoff unit in milliseconds
        on_retry: Called with (attempt, error, delay_seconds) before each wait
        sleep: Awaitable sleep, injectable for tests

    Returns:
        The result of the first successful attempt

    Raises:
        FetchError: The error of the last attempt once retries are exhausted
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return await fetch_call()
        except FetchError as e:
            if attempt > max_retries:
                e.attempts = attempt
                raise

            delay = backoff_delay(attempt, base_delay_ms)
            logger.info(
                f"Attempt {attempt}/{max_retries + 1} failed ({e.kind.value}): {e.message}; "
                f"retrying in {delay:.1f}s"
            )
            if on_retry:
                on_retry(attempt, e, delay)
            await sleep(delay)
