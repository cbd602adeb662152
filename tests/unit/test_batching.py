"""Tests for generation.batching module."""

from __future__ import annotations

import asyncio

import pytest

from sceneweaver.generation.batching import batch_generation_calls


@pytest.mark.asyncio
async def test_batch_empty_list() -> None:
    """Empty input returns empty results."""

    async def _noop(item: str) -> str:
        return item  # pragma: no cover

    results, errors = await batch_generation_calls([], _noop)
    assert results == []
    assert errors == []


@pytest.mark.asyncio
async def test_batch_preserves_order() -> None:
    """Results are in input order regardless of completion order."""
    completion_order: list[int] = []

    async def _delayed(item: tuple[int, float]) -> int:
        idx, delay = item
        await asyncio.sleep(delay)
        completion_order.append(idx)
        return idx * 10

    items = [(0, 0.03), (1, 0.02), (2, 0.01)]
    results, errors = await batch_generation_calls(items, _delayed, max_concurrency=3)

    assert results == [0, 10, 20]
    assert completion_order == [2, 1, 0]
    assert errors == []


@pytest.mark.asyncio
async def test_batch_respects_concurrency_limit() -> None:
    """No more than max_concurrency calls run at once."""
    active = 0
    peak = 0

    async def _track(item: int) -> int:
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        await asyncio.sleep(0.01)
        active -= 1
        return item

    results, _ = await batch_generation_calls(list(range(8)), _track, max_concurrency=2)

    assert results == list(range(8))
    assert peak == 2


@pytest.mark.asyncio
async def test_batch_failure_does_not_abort_others() -> None:
    """A failing item yields None and an error entry; the rest complete."""

    async def _maybe_fail(item: int) -> int:
        if item == 1:
            raise RuntimeError("boom")
        return item

    results, errors = await batch_generation_calls([0, 1, 2], _maybe_fail)

    assert results == [0, None, 2]
    assert len(errors) == 1
    assert errors[0][0] == 1
    assert str(errors[0][1]) == "boom"


@pytest.mark.asyncio
async def test_batch_timeout_counts_as_failure() -> None:
    async def _slow(item: float) -> float:
        await asyncio.sleep(item)
        return item

    results, errors = await batch_generation_calls([0.0, 1.0], _slow, timeout=0.05)

    assert results == [0.0, None]
    assert [idx for idx, _ in errors] == [1]
    assert isinstance(errors[0][1], TimeoutError)
