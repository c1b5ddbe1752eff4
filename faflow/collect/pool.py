"""
Content fetch pool.

`fetch_contents` takes a stream of entry summaries and retrieves the
content of each one concurrently, never running more than ``limit``
fetches at a time.  Entries are emitted as their fetches complete, so
the output order is not defined.  A fetch that raises or returns
``None`` produces no output and does not affect the other fetches.

The pool is built from an ``asyncio.Semaphore`` (one permit per
in-flight fetch), a producer task that drains the upstream stream and
spawns one task per entry, and an ``asyncio.Queue`` that carries
finished entries back to the consumer.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import AsyncIterable, AsyncIterator, Awaitable, Callable, Optional, Set, TypeVar

from ..entries.models import Entry

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Entry)

ContentFetch = Callable[[E], Awaitable[Optional[object]]]
ContentCheck = Callable[[E, object], bool]

_DONE = object()


async def fetch_contents(
    entries: AsyncIterable[E],
    fetch: ContentFetch,
    limit: int,
    accept: Optional[ContentCheck] = None,
) -> AsyncIterator[E]:
    """Yield entries of ``entries`` with their content attached, in completion order.

    Args:
        entries: Upstream stream of entry summaries.
        fetch: Coroutine function returning the content of one entry, or
            ``None`` when it could not be recovered.
        limit: Maximum number of concurrent fetches; values below 1 mean 1.
        accept: Optional check run on the fetched content before it is
            attached; entries it rejects are dropped.
    """
    semaphore = asyncio.Semaphore(max(1, limit))
    queue: asyncio.Queue = asyncio.Queue()
    in_flight: Set[asyncio.Task] = set()

    async def worker(entry: E) -> None:
        try:
            content = await fetch(entry)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to fetch content for %s %d: %s", entry.entry_type, entry.id, exc)
            return
        finally:
            semaphore.release()
        if content is None:
            logger.warning("No content found for %s %d", entry.entry_type, entry.id)
            return
        if accept is not None and not accept(entry, content):
            logger.debug("Dropping %s %d after content check", entry.entry_type, entry.id)
            return
        entry.set_content(content)
        await queue.put(entry)

    async def produce() -> None:
        try:
            async for entry in entries:
                await semaphore.acquire()
                task = asyncio.create_task(worker(entry))
                in_flight.add(task)
                task.add_done_callback(in_flight.discard)
            # asyncio.wait does not cancel the tasks if the producer is cancelled.
            if in_flight:
                await asyncio.wait(set(in_flight))
        finally:
            queue.put_nowait(_DONE)

    producer = asyncio.create_task(produce())
    try:
        while True:
            item = await queue.get()
            if item is _DONE:
                break
            yield item
        # Re-raise an upstream failure, if any.
        await producer
    finally:
        if not producer.done():
            producer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await producer
        if in_flight:
            await asyncio.wait(set(in_flight))
