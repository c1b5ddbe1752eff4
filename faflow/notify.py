"""
Entry delivery.

The collector only decides which entries should be offered to a user;
a `Notifier` delivers them and then records each delivered entry in
the known-entry store so it is not offered again.  `LogNotifier`
writes a short text rendering of every entry to the log, which is what
the CLI uses.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import List

from .config import MAX_CONTENT_LENGTH
from .entries.models import Entry, SubmissionEntry
from .storage.database import Database, User, utc_now

logger = logging.getLogger(__name__)


def truncate(text: str, limit: int) -> str:
    if limit <= 0 or len(text) <= limit:
        return text
    return text[: max(0, limit - 1)].rstrip() + "…"


def render_entry(entry: Entry, max_content_length: int = MAX_CONTENT_LENGTH) -> str:
    """Plain-text rendering of an entry, as a notification would show it."""
    lines: List[str] = [f"[{entry.entry_type}] {entry.title or '(untitled)'}"]
    lines.append(f"From: {entry.from_user.name}")
    if entry.date is not None:
        lines.append(f"Date: {entry.date.isoformat()}")
    if entry.link:
        lines.append(f"Link: {entry.link}")

    if isinstance(entry, SubmissionEntry):
        lines.append(f"Rating: {entry.rating.symbol} {entry.rating}")
        if entry.is_blocked:
            lines.append(f"Blocked tags: {', '.join(sorted(entry.blocked_reasons))}")
            return "\n".join(lines)
        if entry.thumbnail is not None:
            lines.append(f"Preview: {entry.thumbnail.with_size_large()}")
        if entry.full_view:
            lines.append(f"Full view: {entry.full_view}")
        text = entry.description
    else:
        text = entry.content.text if entry.has_content else ""

    if text:
        lines.append("")
        lines.append(truncate(text, max_content_length))
    return "\n".join(lines)


class Notifier(ABC):
    @abstractmethod
    async def deliver(self, user: User, entry: Entry) -> None:
        """Deliver one entry to ``user`` and record it as known."""

    @abstractmethod
    async def notify_invalid_credentials(self, user: User) -> None:
        """Tell ``user`` that their FurAffinity cookies no longer work."""


class LogNotifier(Notifier):
    def __init__(self, store: Database, max_content_length: int = MAX_CONTENT_LENGTH) -> None:
        self.store = store
        self.max_content_length = max_content_length

    async def deliver(self, user: User, entry: Entry) -> None:
        logger.info("New entry for user %d:\n%s", user.id, render_entry(entry, self.max_content_length))
        self.store.create_known_entry(
            entry.entry_type,
            entry.id,
            user.id,
            notified_at=utc_now(),
            sent_date=entry.date,
        )

    async def notify_invalid_credentials(self, user: User) -> None:
        logger.warning(
            "Credentials of user %d are invalid; update the cookies with 'faflow user cookie'", user.id
        )
