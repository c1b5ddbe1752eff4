"""
Novelty filter.

An entry is new for a user when the known-entry store holds no record
for its (entry type, id, user) key.  The filter only reads the store;
the notifier writes the record after a successful delivery.
"""

from __future__ import annotations

import logging
from typing import AsyncIterable, AsyncIterator, TypeVar

from ..entries.models import Entry
from ..entries.types import EntryType

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Entry)


class NoveltyFilter:
    def __init__(self, store, user_id: int) -> None:
        self.store = store
        self.user_id = user_id

    def is_new(self, entry_type: EntryType, entry_id: int) -> bool:
        return not self.store.exists(entry_type, entry_id, self.user_id)

    async def filter_new(self, entries: AsyncIterable[E]) -> AsyncIterator[E]:
        async for entry in entries:
            if self.is_new(entry.entry_type, entry.id):
                yield entry
            else:
                logger.debug("%s %d already known for user %d", entry.entry_type, entry.id, self.user_id)
