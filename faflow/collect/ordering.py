"""
Ordering adapter.

FA lists submissions newest first.  When oldest-first delivery is
wanted the whole listing has to be read before the first entry can be
emitted, so `reverse_stream` buffers the upstream stream completely and
then replays it backwards.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import AsyncIterable, AsyncIterator, Deque, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# One page of the submission inbox.
DEFAULT_CAPACITY = 72


async def reverse_stream(entries: AsyncIterable[T], capacity: int = DEFAULT_CAPACITY) -> AsyncIterator[T]:
    buffer: Deque[T] = deque()
    async for entry in entries:
        buffer.appendleft(entry)
    if len(buffer) > capacity:
        logger.debug("Reversed %d entries, more than the expected %d", len(buffer), capacity)
    for entry in buffer:
        yield entry
