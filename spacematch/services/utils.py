import asyncio
from collections.abc import Callable, Iterable
from typing import TypeVar

T = TypeVar("T")
R = TypeVar("R")


async def score_concurrently(fn: Callable[[T], R], items: Iterable[T], concurrency: int = 16) -> list[R]:
    """
    Apply a pure scoring function to every item on a bounded worker pool.

    Results come back in input order; callers sort afterwards.
    """
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def _run(item: T) -> R:
        async with semaphore:
            return await asyncio.to_thread(fn, item)

    return list(await asyncio.gather(*(_run(item) for item in items)))


def tokenize(text: str) -> list[str]:
    """Lower-cased whitespace tokens, empties dropped."""
    return [token for token in (text or "").lower().split() if token]
