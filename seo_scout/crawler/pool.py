# seo_scout/crawler/pool.py
"""
Bounded-concurrency map over a collection: task queue, fixed pool of workers,
ordered result slots.
"""
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Iterable, List, Optional, Tuple, TypeVar

T = TypeVar("T")
R = TypeVar("R")


async def bounded_map(
    items: Iterable[T],
    func: Callable[[T], Awaitable[R]],
    concurrency: int,
) -> List[R]:
    """Apply *func* to every item with at most *concurrency* calls in flight.

    Workers pull ``(index, item)`` pairs from a shared queue until it is
    drained, so the output order always equals the input order whatever the
    completion order. An exception raised by *func* cancels the remaining
    workers and propagates.
    """
    if concurrency < 1:
        raise ValueError("concurrency must be >= 1")
    work = list(items)
    if not work:
        return []

    results: List[Optional[R]] = [None] * len(work)
    queue: asyncio.Queue[Tuple[int, T]] = asyncio.Queue()
    for pair in enumerate(work):
        queue.put_nowait(pair)

    async def _worker() -> None:
        while True:
            try:
                index, item = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            try:
                results[index] = await func(item)
            finally:
                queue.task_done()

    workers = [asyncio.create_task(_worker()) for _ in range(min(concurrency, len(work)))]
    try:
        await asyncio.gather(*workers)
    except BaseException:
        for w in workers:
            w.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        raise
    return results  # type: ignore[return-value]
