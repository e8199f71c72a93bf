"""Bounded concurrent fan-out for independent host calls."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from typing import TypeVar

T = TypeVar("T")
R = TypeVar("R")


async def gather_bounded(
    items: Iterable[T],
    fn: Callable[[T], Awaitable[R]],
    limit: int,
) -> list[R]:
    """Run fn over items with at most `limit` calls in flight.

    Results come back in input order. The first exception is
    raised; calls already started run to completion.
    """
    if limit < 1:
        raise ValueError(f"Concurrency limit must be positive, got {limit}")
    semaphore = asyncio.Semaphore(limit)

    async def run(item: T) -> R:
        async with semaphore:
            return await fn(item)

    return list(await asyncio.gather(*(run(item) for item in items)))
