"""Exponential backoff wrapper for remote calls."""

import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')

DEFAULT_TRIES = 3
DEFAULT_BASE_DELAY_MS = 300


def compute_backoff(attempt: int, base_delay_ms: float, jitter: bool = True) -> float:
    """Delay in seconds after the ``attempt``-th failure (1-based)."""
    delay_ms = base_delay_ms * (2 ** (attempt - 1))
    if jitter:
        delay_ms *= 0.8 + random.random() * 0.4
    return delay_ms / 1000.0


async def with_retry(operation: Callable[[], Awaitable[T]],
                     tries: int = DEFAULT_TRIES,
                     base_delay_ms: float = DEFAULT_BASE_DELAY_MS,
                     jitter: bool = True,
                     on_retry: Optional[Callable[[int, Exception, float], None]] = None) -> T:
    """Await ``operation()`` up to ``tries`` times.

    Any exception triggers a retry while attempts remain; the last one is
    re-raised once they are exhausted.

    Args:
        operation: Zero-argument callable returning an awaitable
        tries: Total number of attempts (at least 1)
        base_delay_ms: Delay before the second attempt; doubles each time
        jitter: Scale each delay by a random factor in [0.8, 1.2)
        on_retry: Called with (attempt, error, delay_s) before sleeping
    """
    tries = max(1, int(tries))
    last_error: Optional[Exception] = None

    for attempt in range(1, tries + 1):
        try:
            return await operation()
        except Exception as e:
            last_error = e
            if attempt >= tries:
                break
            delay = compute_backoff(attempt, base_delay_ms, jitter)
            logger.warning(f"Attempt {attempt}/{tries} failed: {e}; retrying in {delay:.2f}s")
            if on_retry is not None:
                try:
                    on_retry(attempt, e, delay)
                except Exception as callback_error:
                    logger.debug(f"on_retry callback failed: {callback_error}")
            await asyncio.sleep(delay)

    raise last_error
