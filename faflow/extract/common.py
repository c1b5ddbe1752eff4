"""
Markup helpers shared by every listing extractor.

FurAffinity pages share a handful of conventions: relative links that
must be resolved against the site root, author blocks with a profile
link and optional display name, ``span.popup_date`` elements carrying
an epoch in ``data-time``, and shortened ``a.auto_link`` anchors whose
visible text is truncated.  The helpers here hide those conventions
from the per-surface extractors.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from ..entries.models import DEFAULT_USERNAME, FA_BASE_URL, FurAffinityUser
from ..entries.tools import (
    ParseError,
    normalize_username,
    trim_html_text,
    username_from_profile_link,
)
from ..entries.types import EntryType

logger = logging.getLogger(__name__)

# Journal content is already stripped of its header and footer by FA.
_HEADER_FOOTER_SELECTORS: Dict[EntryType, Tuple[str, str]] = {
    EntryType.SUBMISSION: (".submission-header", ".submission-footer"),
}


def furaffinity_url(path: str = "/") -> str:
    """Resolve ``path`` (absolute or relative) against the site root."""
    return urljoin(FA_BASE_URL + "/", path)


def parse_document(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def element_text(element: Optional[Tag]) -> str:
    if element is None:
        return ""
    return trim_html_text(element.get_text())


def has_class(element: Tag, *classes: str) -> bool:
    present = element.get("class") or []
    return any(cls in present for cls in classes)


def user_from_link(anchor: Tag) -> FurAffinityUser:
    """Build an author from a profile anchor; raises ParseError without a username."""
    href = anchor.get("href")
    if not href:
        raise ParseError("author anchor has no href")
    profile_url = furaffinity_url(href)
    username = username_from_profile_link(profile_url)
    return FurAffinityUser(
        display_name=element_text(anchor),
        username=normalize_username(username),
        profile_url=profile_url,
    )


def user_from_note_element(element: Optional[Tag]) -> FurAffinityUser:
    """Recover the sender of a note from its ``.note-list-sender`` block.

    The profile link is preferred; older markup only carries the name in
    a ``.js-userName-block`` span prefixed with ``~``.
    """
    user = FurAffinityUser(username=DEFAULT_USERNAME)
    if element is None:
        return user

    anchor = element.find("a", href=True)
    if anchor is not None:
        user.profile_url = furaffinity_url(anchor["href"])
        try:
            user.username = normalize_username(username_from_profile_link(user.profile_url))
        except ParseError as exc:
            logger.warning("Could not parse username from note sender link: %s", exc)
            user.username = ""

    if not user.username or user.username == DEFAULT_USERNAME:
        fallback = element_text(element.select_one(".js-userName-block")).strip("~")
        if fallback:
            user.username = normalize_username(fallback)

    if user.profile_url is None and user.username and user.username != DEFAULT_USERNAME:
        user.profile_url = furaffinity_url(f"/user/{user.username}/")

    user.display_name = element_text(element.select_one(".js-displayName-block"))
    return user


def remove_headers_and_footers(element: Tag, entry_type: EntryType) -> None:
    selectors = _HEADER_FOOTER_SELECTORS.get(entry_type)
    if not selectors:
        return
    for selector in selectors:
        for found in element.select(selector):
            found.decompose()


def fix_auto_links(element: Tag) -> None:
    """Replace the shortened text of ``a.auto_link`` anchors with their full href."""
    for anchor in element.select("a.auto_link"):
        href = anchor.get("href")
        if href:
            anchor.string = href


def is_logged_in(status: int, document: Optional[BeautifulSoup]) -> bool:
    """Decide from the settings page response whether the session cookies are valid."""
    if status in (401, 403):
        return False
    if document is None:
        return False
    notice = document.select_one("#site-content .notice-message")
    if notice is None:
        return True
    text = notice.get_text().lower()
    return not ("system message" in text and "please log in" in text)
