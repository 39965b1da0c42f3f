"""Bounded-concurrency mapping over an ordered list of inputs.

A concurrency shape only: there is no retry or error recovery here. Whatever
worker is passed in owns its own resilience (usually a cache-backed lookup
that already swallows failures into None).
"""

import asyncio
import itertools
import logging
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

DEFAULT_POOL_SIZE = 3

T = TypeVar("T")
R = TypeVar("R")


def clamp_limit(limit: Optional[int], item_count: int) -> int:
    """Clamps `limit` to [1, item_count]; only a missing limit means the default."""
    return max(1, min(DEFAULT_POOL_SIZE if limit is None else limit, item_count or 1))


async def map_pool(
    items: Sequence[T],
    limit: Optional[int],
    worker: Callable[[T, int], Awaitable[R]],
) -> List[R]:
    """Applies `worker(item, index)` to every item with at most `limit` calls in flight.

    Returns results in input order regardless of completion order. An
    exception from `worker` propagates and fails the whole batch.
    """
    if not items:
        return []

    results: List[Optional[R]] = [None] * len(items)
    # next() on a shared counter hands each index to exactly one lane
    cursor = itertools.count()
    lanes = clamp_limit(limit, len(items))

    async def run_lane() -> None:
        while True:
            index = next(cursor)
            if index >= len(items):
                return
            results[index] = await worker(items[index], index)

    logger.debug(f"map_pool: {len(items)} items across {lanes} lanes")
    await asyncio.gather(*(run_lane() for _ in range(lanes)))
    return results  # type: ignore[return-value]
