"""
Notes inbox extractor.

Parses the private-message listing (``/msg/pms/<page>/``) into
`NoteEntry` summaries and a single note page into `NoteContent`.
Nodes that are missing an identifier or a send date are skipped; the
rest of the page is still returned.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterator, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Tag

from ..entries.models import NoteContent, NoteEntry
from ..entries.tools import ParseError, epoch_to_datetime, parse_site_date, trim_html_text
from ..entries.types import EntryType
from .common import element_text, furaffinity_url, has_class, user_from_note_element

logger = logging.getLogger(__name__)

NOTES_PATH = "/msg/pms/"
NOTE_SEPARATOR = "—————————"
NOTE_DATE_LAYOUTS = ("%b %d, %Y %I:%M%p", "%b %d, %Y %I:%M %p")

DateCheck = Callable[[EntryType, datetime], bool]


def notes_page_url(page: int = 1) -> str:
    return furaffinity_url(f"{NOTES_PATH}{page}/")


def note_link(note_id: int) -> str:
    return furaffinity_url(f"{NOTES_PATH}1/{note_id}/#message")


def note_id_from_link(href: str) -> int:
    """Return the last numeric path segment of a note permalink."""
    parts = [part for part in urlparse(href).path.split("/") if part]
    if not parts:
        raise ParseError(f"note link '{href}' has no path")
    try:
        note_id = int(parts[-1])
    except ValueError as exc:
        raise ParseError(f"note link '{href}' does not end in an id") from exc
    if note_id <= 0:
        raise ParseError(f"note link '{href}' has an invalid id")
    return note_id


def _note_date(container: Tag) -> datetime:
    date_element = container.select_one(".note-list-senddate")
    if date_element is None:
        raise ParseError("note has no send date")
    popup = date_element.select_one("span.popup_date[data-time]")
    if popup is not None:
        try:
            return epoch_to_datetime(popup.get("data-time"))
        except ParseError:
            logger.debug("Ignoring bad data-time on note, falling back to text")
    return parse_site_date(trim_html_text(date_element.get_text()), NOTE_DATE_LAYOUTS)


def _was_unread(container: Tag, subject: Optional[Tag]) -> bool:
    if has_class(container, "unread", "note-unread"):
        return True
    if subject is not None and has_class(subject, "unread", "note-unread"):
        return True
    return container.select_one("img.unread") is not None


def parse_note(container: Tag) -> NoteEntry:
    """Build a note summary from one ``.note-list-container`` node."""
    anchor = container.select_one("a.notelink[href]")
    if anchor is None:
        raise ParseError("note has no permalink")
    href = furaffinity_url(anchor["href"])
    subject = container.select_one(".note-list-subject")
    return NoteEntry(
        id=note_id_from_link(href),
        title=element_text(subject),
        date=_note_date(container),
        link=href,
        from_user=user_from_note_element(container.select_one(".note-list-sender")),
        was_unread=_was_unread(container, subject),
    )


def parse_notes(document: BeautifulSoup, date_is_valid: DateCheck) -> Iterator[NoteEntry]:
    """Yield the valid note summaries of a notes listing page, in page order."""
    for container in document.select("#notes-list .note-list-container"):
        try:
            note = parse_note(container)
        except ParseError as exc:
            logger.debug("Skipping note node: %s", exc)
            continue
        if not date_is_valid(EntryType.NOTE, note.date):
            continue
        yield note


def parse_note_content(document: BeautifulSoup, note_id: int) -> Optional[NoteContent]:
    body = document.select_one("#message .section-body")
    if body is None:
        return None
    for selector in (".noteWarningMessage", ".section-options"):
        for element in body.select(selector):
            element.decompose()
    # Quoted replies follow the separator.
    text = trim_html_text(body.get_text()).split(NOTE_SEPARATOR)[0]
    return NoteContent(id=note_id, text=trim_html_text(text))
