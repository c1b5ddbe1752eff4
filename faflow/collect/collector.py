"""
Per-user FurAffinity collector.

`FurAffinityCollector` wires the extractors, filters, content pool and
ordering adapter together for one user's pass.  Every surface exposes
the same three levels:

* ``get_*`` – all valid entries of the listing page,
* ``get_new_*`` – those not yet recorded in the known-entry store,
* ``get_new_*_with_content`` – the new entries with their content
  fetched concurrently.

All of them are async generators.  A listing page that cannot be
fetched is logged and yields nothing; a detail page that cannot be
fetched drops only that entry.
"""

from __future__ import annotations

import logging
from typing import AsyncIterator, List, Optional

from bs4 import BeautifulSoup

from ..entries.models import (
    CommentContent,
    CommentEntry,
    Entry,
    JournalContent,
    JournalEntry,
    NoteContent,
    NoteEntry,
    SubmissionContent,
    SubmissionEntry,
)
from ..entries.types import OTHER_ENTRY_TYPES, EntryType
from ..extract.common import furaffinity_url, is_logged_in
from ..extract.notes import NOTES_PATH, note_link, notes_page_url, parse_note_content, parse_notes
from ..extract.others import (
    OtherEntry,
    other_messages_url,
    parse_comment_content,
    parse_journal_content,
    parse_other_entries,
)
from ..extract.submissions import (
    SUBMISSIONS_PER_PAGE,
    parse_submission_content,
    parse_submission_page,
    submissions_url,
)
from ..filters.novelty import NoveltyFilter
from ..filters.users import flag_blocked
from .fetcher import FetchError
from .ordering import reverse_stream
from .pool import fetch_contents
from .session import CollectorSession

logger = logging.getLogger(__name__)

LOGIN_CHECK_PATH = "/controls/settings"


class FurAffinityCollector:
    def __init__(self, session: CollectorSession, fetcher, store) -> None:
        self.session = session
        self.fetcher = fetcher
        self.novelty = NoveltyFilter(store, session.user_id)

    async def _fetch_listing(self, url: str, cookies=None) -> Optional[BeautifulSoup]:
        try:
            return await self.fetcher.fetch(url, cookies)
        except FetchError as exc:
            logger.warning("Error fetching listing %s for user %d: %s", url, self.session.user_id, exc)
            return None

    async def is_logged_in(self) -> bool:
        """Check the settings page; raises FetchError when it cannot be loaded."""
        result = await self.fetcher.get(furaffinity_url(LOGIN_CHECK_PATH))
        return is_logged_in(result.status, result.document)

    # Notes

    async def get_notes(self, page: int = 1) -> AsyncIterator[NoteEntry]:
        document = await self._fetch_listing(notes_page_url(page), self.session.notes_cookies())
        if document is None:
            return
        for note in parse_notes(document, self.session.date_is_valid):
            if self.session.is_whitelisted(EntryType.NOTE, note.from_user.username):
                yield note

    def get_new_notes(self) -> AsyncIterator[NoteEntry]:
        return self.novelty.filter_new(self.get_notes(1))

    async def get_new_notes_with_content(self) -> AsyncIterator[NoteEntry]:
        """New notes with their text; notes that were unread are marked unread again.

        Reading a note on FA marks it as read, so every previously unread
        note handed to the pool is restored with a single request once
        the pool has finished.
        """
        unread_ids: List[int] = []

        async def track_unread(notes: AsyncIterator[NoteEntry]) -> AsyncIterator[NoteEntry]:
            async for note in notes:
                if note.was_unread:
                    unread_ids.append(note.id)
                yield note

        pool = fetch_contents(
            track_unread(self.get_new_notes()),
            self._note_content,
            self.session.limit_concurrency,
        )
        try:
            async for note in pool:
                yield note
        finally:
            await pool.aclose()
            await self.mark_unread(*unread_ids)

    async def _note_content(self, note: NoteEntry) -> Optional[NoteContent]:
        return await self.get_note_content(note.id)

    async def get_note_content(self, note_id: int) -> Optional[NoteContent]:
        document = await self.fetcher.fetch(note_link(note_id), self.session.notes_cookies())
        return parse_note_content(document, note_id)

    async def mark_unread(self, *note_ids: int) -> bool:
        if not note_ids:
            return True
        form = [("manage_notes", "1"), ("move_to", "unread")]
        form.extend(("items[]", str(note_id)) for note_id in note_ids)
        try:
            status = await self.fetcher.post_form(
                furaffinity_url(NOTES_PATH), form, self.session.notes_cookies()
            )
        except FetchError as exc:
            logger.warning("Error marking notes %s as unread: %s", list(note_ids), exc)
            return False
        if not 200 <= status < 400:
            logger.warning("Marking notes %s as unread failed with status %d", list(note_ids), status)
            return False
        logger.debug("Marked %d notes as unread for user %d", len(note_ids), self.session.user_id)
        return True

    # Other entries

    async def _get_other_entries_unfiltered(self, *entry_types: EntryType) -> AsyncIterator[OtherEntry]:
        document = await self._fetch_listing(other_messages_url())
        if document is None:
            return
        for entry in parse_other_entries(document, entry_types or OTHER_ENTRY_TYPES, self.session.date_is_valid):
            yield entry

    def get_other_entries(self, *entry_types: EntryType) -> AsyncIterator[OtherEntry]:
        return self.session.user_filter.filter_whitelisted(self._get_other_entries_unfiltered(*entry_types))

    def get_new_other_entries(self, *entry_types: EntryType) -> AsyncIterator[OtherEntry]:
        return self.novelty.filter_new(self.get_other_entries(*entry_types))

    def get_new_other_entries_with_content(self, *entry_types: EntryType) -> AsyncIterator[OtherEntry]:
        return fetch_contents(
            self.get_new_other_entries(*entry_types),
            self.get_other_entry_content,
            self.session.limit_concurrency,
        )

    async def get_other_entry_content(self, entry: Entry):
        if isinstance(entry, CommentEntry):
            return await self._comment_content(entry)
        if isinstance(entry, JournalEntry):
            return await self._journal_content(entry)
        raise TypeError(f"{type(entry).__name__} is not an other entry")

    async def _comment_content(self, entry: CommentEntry) -> Optional[CommentContent]:
        document = await self.fetcher.fetch(entry.link)
        return parse_comment_content(document, entry.id)

    async def _journal_content(self, entry: JournalEntry) -> Optional[JournalContent]:
        document = await self.fetcher.fetch(entry.link)
        return parse_journal_content(document, entry.id)

    # Submissions

    async def _get_submission_listing(self) -> AsyncIterator[SubmissionEntry]:
        document = await self._fetch_listing(submissions_url())
        if document is None:
            return
        page = parse_submission_page(document, self.session.date_is_valid)
        for entry in page.entries:
            if not self.session.is_whitelisted(EntryType.SUBMISSION, entry.from_user.username):
                continue
            if self.session.respect_blocked_tags:
                flag_blocked(entry, page.blocked_tags)
            yield entry

    def get_submission_entries(self) -> AsyncIterator[SubmissionEntry]:
        entries = self._get_submission_listing()
        if self.session.iterate_submissions_backwards:
            return reverse_stream(entries, SUBMISSIONS_PER_PAGE)
        return entries

    def get_new_submission_entries(self) -> AsyncIterator[SubmissionEntry]:
        return self.novelty.filter_new(self.get_submission_entries())

    def get_new_submission_entries_with_content(self) -> AsyncIterator[SubmissionEntry]:
        return fetch_contents(
            self.get_new_submission_entries(),
            self.get_submission_content,
            self.session.limit_concurrency,
            accept=self._content_date_is_valid,
        )

    def _content_date_is_valid(self, entry: SubmissionEntry, content: SubmissionContent) -> bool:
        return self.session.date_is_valid(EntryType.SUBMISSION, content.date)

    async def get_submission_content(self, entry: SubmissionEntry) -> Optional[SubmissionContent]:
        document = await self.fetcher.fetch(entry.link)
        return parse_submission_content(document, entry)
