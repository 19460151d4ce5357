from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

Sleep = Callable[[float], Awaitable[None]]


def should_retry(attempt: int, max_retries: int) -> bool:
    """Return ``True`` while the 0-based retry ``attempt`` is within budget."""
    return attempt < max_retries


def compute_backoff(attempt: int, initial_delay: int) -> int:
    """Exponential backoff in milliseconds for the 0-based retry ``attempt``."""
    return initial_delay * 2**attempt


async def schedule_retry(
    attempt: int, initial_delay: int, sleep: Sleep = asyncio.sleep
) -> int:
    """Suspend for the computed backoff delay and return it in milliseconds."""
    delay = compute_backoff(attempt, initial_delay)
    await sleep(delay / 1000)
    return delay
