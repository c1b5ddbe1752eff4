"""
Tests for the concurrent content pool and the ordering adapter.
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Iterable, List

import pytest

from faflow.collect.ordering import reverse_stream
from faflow.collect.pool import fetch_contents
from faflow.entries.models import JournalContent, JournalEntry


async def stream(items: Iterable) -> AsyncIterator:
    for item in items:
        yield item


def journals(*ids: int) -> List[JournalEntry]:
    return [JournalEntry(id=journal_id) for journal_id in ids]


async def collect(entries) -> List:
    return [entry async for entry in entries]


def test_contents_are_attached() -> None:
    async def fetch(entry):
        return JournalContent(id=entry.id, text=f"text {entry.id}")

    result = asyncio.run(collect(fetch_contents(stream(journals(1, 2, 3)), fetch, 2)))
    assert sorted(entry.id for entry in result) == [1, 2, 3]
    assert all(entry.content.text == f"text {entry.id}" for entry in result)


def test_failures_are_isolated() -> None:
    async def fetch(entry):
        if entry.id == 2:
            raise RuntimeError("boom")
        if entry.id == 3:
            return None
        return JournalContent(id=entry.id, text="ok")

    result = asyncio.run(collect(fetch_contents(stream(journals(1, 2, 3, 4)), fetch, 4)))
    assert sorted(entry.id for entry in result) == [1, 4]


def test_accept_check_drops_entries() -> None:
    async def fetch(entry):
        return JournalContent(id=entry.id, text="ok")

    result = asyncio.run(
        collect(fetch_contents(stream(journals(1, 2)), fetch, 1, accept=lambda entry, content: entry.id == 2))
    )
    assert [entry.id for entry in result] == [2]
    assert result[0].has_content


@pytest.mark.parametrize("limit, expected", [(0, 1), (-3, 1), (2, 2), (10, 5)])
def test_concurrency_is_bounded(limit: int, expected: int) -> None:
    running = 0
    peak = 0

    async def fetch(entry):
        nonlocal running, peak
        running += 1
        peak = max(peak, running)
        await asyncio.sleep(0.01)
        running -= 1
        return JournalContent(id=entry.id, text="ok")

    result = asyncio.run(collect(fetch_contents(stream(journals(1, 2, 3, 4, 5)), fetch, limit)))
    assert len(result) == 5
    assert peak == expected


def test_output_follows_completion_order() -> None:
    delays = {1: 0.05, 2: 0.0, 3: 0.02}

    async def fetch(entry):
        await asyncio.sleep(delays[entry.id])
        return JournalContent(id=entry.id, text="ok")

    result = asyncio.run(collect(fetch_contents(stream(journals(1, 2, 3)), fetch, 3)))
    assert [entry.id for entry in result] == [2, 3, 1]


def test_early_close_waits_for_in_flight_fetches() -> None:
    finished: List[int] = []

    async def fetch(entry):
        await asyncio.sleep(0.01 * entry.id)
        finished.append(entry.id)
        return JournalContent(id=entry.id, text="ok")

    async def run() -> int:
        pool = fetch_contents(stream(journals(1, 2, 3)), fetch, 3)
        first = await pool.__anext__()
        await pool.aclose()
        return first.id

    assert asyncio.run(run()) == 1
    assert sorted(finished) == [1, 2, 3]


def test_upstream_error_is_raised() -> None:
    async def broken():
        yield JournalEntry(id=1)
        raise RuntimeError("listing failed")

    async def fetch(entry):
        return JournalContent(id=entry.id, text="ok")

    with pytest.raises(RuntimeError, match="listing failed"):
        asyncio.run(collect(fetch_contents(broken(), fetch, 2)))


def test_reverse_stream() -> None:
    assert asyncio.run(collect(reverse_stream(stream([5, 4, 3])))) == [3, 4, 5]
    assert asyncio.run(collect(reverse_stream(stream([])))) == []
    assert asyncio.run(collect(reverse_stream(stream(range(5)), capacity=2))) == [4, 3, 2, 1, 0]
