"""
"Other messages" extractor.

The ``/msg/others/`` page groups submission comments, journal comments
and journals into separate sections of ``li`` nodes.  Each node holds
two anchors: for comments the author comes first and the commented
target second, for journals the order is reversed.  Comment ids live in
the ``cid:<n>`` fragment of the target link; journal ids in its
``/journal/<n>/`` path.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, Iterator, Optional, Union
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Tag

from ..entries.models import (
    CommentContent,
    CommentEntry,
    FurAffinityUser,
    JournalContent,
    JournalEntry,
)
from ..entries.tools import ParseError, epoch_to_datetime, parse_site_date
from ..entries.types import EntryType
from .common import element_text, fix_auto_links, furaffinity_url, remove_headers_and_footers, user_from_link

logger = logging.getLogger(__name__)

OTHER_MESSAGES_PATH = "/msg/others/"
ENTRY_DATE_LAYOUTS = ("%B %d, %Y %I:%M:%S %p",)
JOURNAL_ID_RE = re.compile(r"/journal/(\d+)/?")

SECTIONS = (
    ("#messages-comments-submission", EntryType.SUBMISSION_COMMENT),
    ("#messages-comments-journal", EntryType.JOURNAL_COMMENT),
    ("#messages-journals", EntryType.JOURNAL),
)

OtherEntry = Union[CommentEntry, JournalEntry]
DateCheck = Callable[[EntryType, datetime], bool]


@dataclass
class _Message:
    title: str
    from_user: FurAffinityUser
    date: datetime
    link: Optional[str]


def other_messages_url() -> str:
    return furaffinity_url(OTHER_MESSAGES_PATH)


def comment_id_from_link(link: str) -> int:
    fragment = urlparse(link).fragment
    if not fragment.startswith("cid:"):
        raise ParseError(f"no comment id in link '{link}'")
    try:
        return int(fragment[len("cid:"):])
    except ValueError as exc:
        raise ParseError(f"invalid comment id in link '{link}'") from exc


def journal_id_from_link(link: str) -> int:
    match = JOURNAL_ID_RE.search(urlparse(link).path)
    if not match:
        raise ParseError(f"no journal id in link '{link}'")
    return int(match.group(1))


def _message_date(node: Tag) -> datetime:
    popup = node.select_one("span.popup_date")
    if popup is None:
        raise ParseError("message has no date")
    try:
        return epoch_to_datetime(popup.get("data-time"))
    except ParseError:
        return parse_site_date(element_text(popup), ENTRY_DATE_LAYOUTS)


def _parse_message(node: Tag, entry_type: EntryType) -> _Message:
    author_index, title_index = (1, 0) if entry_type == EntryType.JOURNAL else (0, 1)
    anchors = node.find_all("a", limit=2)
    if len(anchors) <= author_index:
        raise ParseError("message has no author link")
    from_user = user_from_link(anchors[author_index])

    title, link = "", None
    if len(anchors) > title_index:
        target = anchors[title_index]
        title = element_text(target)
        if target.get("href"):
            link = furaffinity_url(target["href"])

    return _Message(title=title, from_user=from_user, date=_message_date(node), link=link)


def parse_other_entry(node: Tag, entry_type: EntryType) -> OtherEntry:
    message = _parse_message(node, entry_type)
    if message.link is None:
        raise ParseError(f"{entry_type} has no link")
    if entry_type == EntryType.JOURNAL:
        return JournalEntry(
            id=journal_id_from_link(message.link),
            title=message.title,
            date=message.date,
            link=message.link,
            from_user=message.from_user,
        )
    return CommentEntry(
        id=comment_id_from_link(message.link),
        title=message.title,
        date=message.date,
        link=message.link,
        from_user=message.from_user,
        comment_type=entry_type,
    )


def parse_other_entries(
    document: BeautifulSoup,
    entry_types: Iterable[EntryType],
    date_is_valid: DateCheck,
) -> Iterator[OtherEntry]:
    """Yield entries of the requested types from the other-messages page."""
    wanted = set(entry_types)
    for selector, entry_type in SECTIONS:
        if entry_type not in wanted:
            continue
        section = document.select_one(selector)
        if section is None:
            continue
        for node in section.find_all("li"):
            try:
                entry = parse_other_entry(node, entry_type)
            except ParseError as exc:
                logger.debug("Skipping %s node: %s", entry_type, exc)
                continue
            if entry.id == 0 or not date_is_valid(entry_type, entry.date):
                continue
            yield entry


def parse_comment_content(document: BeautifulSoup, comment_id: int) -> Optional[CommentContent]:
    anchor = document.find(id=f"cid:{comment_id}")
    if anchor is None or anchor.parent is None:
        return None
    text_element = anchor.parent.select_one(".comment-content .comment_text")
    if text_element is None:
        return None
    fix_auto_links(text_element)
    text = element_text(text_element)
    if not text:
        return None
    return CommentContent(id=comment_id, text=text)


def parse_journal_content(document: BeautifulSoup, journal_id: int) -> Optional[JournalContent]:
    body = document.select_one("#site-content .journal-content")
    if body is None:
        return None
    remove_headers_and_footers(body, EntryType.JOURNAL)
    fix_auto_links(body)
    text = element_text(body)
    if not text:
        return None
    return JournalContent(id=journal_id, text=text)
