"""Async helpers for running blocking code from an async context."""

from __future__ import annotations

import asyncio
import functools
import random
from collections.abc import Callable
from typing import TypeVar

T = TypeVar("T")


async def run_sync(fn: Callable[..., T], *args: object, **kwargs: object) -> T:
    """Run a blocking *fn* in the default executor without stalling the loop."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(fn, *args, **kwargs))


async def sleep_jitter(min_ms: int, max_ms: int) -> float:
    """Sleep for a random whole number of milliseconds in ``[min_ms, max_ms]``.

    Returns the delay in seconds.  A non-positive upper bound skips the sleep.
    """
    if max_ms <= 0:
        return 0.0
    delay = random.randint(max(min_ms, 0), max(min_ms, max_ms)) / 1000
    await asyncio.sleep(delay)
    return delay
