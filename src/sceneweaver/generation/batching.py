"""Bounded-concurrency batch helper for generation calls.

Wraps asyncio.Semaphore to limit concurrent calls to the generation
service. Preserves input order in results; a failed or timed-out item
yields None and an error entry but never cancels the others.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, TypeVar

from sceneweaver.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

log = get_logger(__name__)

T = TypeVar("T")
Item = TypeVar("Item")


async def batch_generation_calls(
    items: list[Item],
    call_fn: Callable[[Item], Awaitable[T]],
    max_concurrency: int = 2,
    *,
    timeout: float | None = None,
) -> tuple[list[T | None], list[tuple[int, Exception]]]:
    """Run generation calls concurrently with bounded parallelism.

    Args:
        items: Input items to process.
        call_fn: Async function taking one item and returning its result.
        max_concurrency: Maximum calls in flight.
        timeout: Seconds allowed per call; None for no limit. A timed-out
            call is reported as a ``TimeoutError``.

    Returns:
        Tuple of:
            - results: List in input order (None for failed items).
            - errors: List of (index, exception) for failed items.
    """
    if not items:
        return [], []

    semaphore = asyncio.Semaphore(max(1, max_concurrency))
    results: list[T | None] = [None] * len(items)
    errors: list[tuple[int, Exception]] = []

    async def _run_one(idx: int, item: Item) -> None:
        async with semaphore:
            try:
                if timeout is None:
                    results[idx] = await call_fn(item)
                else:
                    results[idx] = await asyncio.wait_for(call_fn(item), timeout)
            except Exception as e:
                errors.append((idx, e))
                log.warning(
                    "batch_item_failed",
                    index=idx,
                    error=str(e) or type(e).__name__,
                )

    await asyncio.gather(*(_run_one(i, item) for i, item in enumerate(items)))

    errors.sort(key=lambda entry: entry[0])
    return results, errors
