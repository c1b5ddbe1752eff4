"""
User whitelist and blocked-tag filtering.

A whitelist restricts an entry type to a set of authors.  Usernames are
normalized (trimmed and case-folded) both when the whitelist is set and
when it is queried, so ``" FooBar "`` and ``"foobar"`` are the same
author.  An entry type without a whitelist lets every author through.

Blocked tags never remove a submission; they only record which of its
tags matched so that the notifier can hide the preview.
"""

from __future__ import annotations

import logging
from typing import AsyncIterable, AsyncIterator, Dict, FrozenSet, Iterable, Optional, TypeVar

from ..entries.models import Entry, SubmissionEntry
from ..entries.tools import normalize_username
from ..entries.types import EntryType

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Entry)


class UserFilter:
    def __init__(self, filters: Optional[Dict[EntryType, Iterable[str]]] = None) -> None:
        self._filters: Dict[EntryType, FrozenSet[str]] = {}
        for entry_type, users in (filters or {}).items():
            self.set_user_filter(entry_type, users)

    def set_user_filter(self, entry_type: EntryType, users: Iterable[str]) -> None:
        normalized = frozenset(normalize_username(user) for user in users if user.strip())
        if not normalized:
            self._filters.pop(entry_type, None)
            return
        self._filters[entry_type] = normalized

    def user_filter(self, entry_type: EntryType) -> Optional[FrozenSet[str]]:
        return self._filters.get(entry_type)

    def is_whitelisted(self, entry_type: EntryType, username: str) -> bool:
        allowed = self._filters.get(entry_type)
        if allowed is None:
            return True
        return normalize_username(username) in allowed

    async def filter_whitelisted(self, entries: AsyncIterable[E]) -> AsyncIterator[E]:
        async for entry in entries:
            if self.is_whitelisted(entry.entry_type, entry.from_user.username):
                yield entry
            else:
                logger.debug("Skipping %s %d from %s (not whitelisted)",
                             entry.entry_type, entry.id, entry.from_user.username)


def blocked_reasons(tags: Iterable[str], blocked_tags: Iterable[str]) -> FrozenSet[str]:
    return frozenset(tags) & frozenset(blocked_tags)


def flag_blocked(entry: SubmissionEntry, blocked_tags: Iterable[str]) -> SubmissionEntry:
    """Record matching blocked tags on ``entry``; the entry is returned either way."""
    entry.blocked_reasons = blocked_reasons(entry.tags, blocked_tags)
    if entry.is_blocked:
        logger.debug("Submission %d matches blocked tags %s", entry.id, sorted(entry.blocked_reasons))
    return entry
