"""
Submission inbox extractor.

The submission inbox (``/msg/submissions/new@72/``) lists up to 72 new
submissions grouped into date sections.  Each section carries the day
it covers as an epoch in ``data-date``; each ``figure`` inside it is
one submission whose CSS classes encode its type (``t-image`` /
``t-text``) and rating (``r-general`` / ``r-mature`` / ``r-adult``).

Besides the markup the page embeds two pieces of page-wide data: the
user's blocked tags on ``<body data-tag-blocklist>`` and a JSON blob in
``#js-submissionData`` with the full title and description of every
listed submission.  Both are returned alongside the entries in a
`SubmissionPage`.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, FrozenSet, List, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Tag

from ..entries.models import (
    DEFAULT_USERNAME,
    FurAffinityUser,
    Rating,
    SubmissionContent,
    SubmissionData,
    SubmissionEntry,
    SubmissionType,
)
from ..entries.tools import (
    ParseError,
    ThumbnailUrl,
    epoch_to_datetime,
    force_https,
    normalize_username,
    tag_list_to_set,
    trim_html_text,
    unescape_html,
    username_from_profile_link,
)
from ..entries.types import EntryType
from .common import element_text, furaffinity_url, has_class, remove_headers_and_footers

logger = logging.getLogger(__name__)

SUBMISSIONS_PATH = "/msg/submissions/new@72/"
SUBMISSIONS_PER_PAGE = 72
SUBMISSION_ID_RE = re.compile(r".*/view/(\d*)/*")
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

DateCheck = Callable[[EntryType, datetime], bool]


@dataclass
class SubmissionPage:
    entries: List[SubmissionEntry] = field(default_factory=list)
    blocked_tags: FrozenSet[str] = frozenset()
    submission_data: Dict[int, SubmissionData] = field(default_factory=dict)


def submissions_url() -> str:
    return furaffinity_url(SUBMISSIONS_PATH)


def submission_id_from_link(link: Optional[str]) -> int:
    """Return the id of a ``/view/<id>/`` link, or 0 when there is none."""
    if not link:
        return 0
    match = SUBMISSION_ID_RE.match(urlparse(link).path)
    if not match or not match.group(1):
        return 0
    return int(match.group(1))


def parse_submission_data(raw: str) -> Dict[int, SubmissionData]:
    """Parse the ``#js-submissionData`` JSON blob keyed by submission id."""
    try:
        decoded = json.loads(raw)
    except (TypeError, ValueError) as exc:
        logger.error("Error decoding submission data: %s", exc)
        return {}
    if not isinstance(decoded, dict):
        logger.error("Submission data is not an object")
        return {}

    result: Dict[int, SubmissionData] = {}
    for key, value in decoded.items():
        try:
            submission_id = int(key)
        except ValueError:
            logger.warning("Ignoring submission data with id '%s'", key)
            continue
        if not isinstance(value, dict):
            continue
        try:
            avatar_mtime = int(value.get("avatar_mtime") or 0)
        except (TypeError, ValueError):
            avatar_mtime = 0
        result[submission_id] = SubmissionData(
            title=unescape_html(str(value.get("title") or "")).strip(),
            description=unescape_html(str(value.get("description") or "")).strip(),
            username=str(value.get("username") or ""),
            lower=str(value.get("lower") or ""),
            avatar_mtime=avatar_mtime,
        )
    return result


def _section_date(section: Tag) -> datetime:
    try:
        return epoch_to_datetime(section.get("data-date"))
    except ParseError as exc:
        logger.warning("Error parsing submission section date: %s", exc)
        return EPOCH


def _submission_user(figure: Tag) -> FurAffinityUser:
    user = FurAffinityUser(username=DEFAULT_USERNAME)
    anchors = figure.select("figcaption a")
    if len(anchors) < 2:
        return user
    author = anchors[1]
    user.display_name = element_text(author)
    if author.get("href"):
        user.profile_url = furaffinity_url(author["href"])
        try:
            user.username = normalize_username(username_from_profile_link(user.profile_url))
        except ParseError as exc:
            logger.error("Error parsing username from submission author link: %s", exc)
    return user


def _submission_type(figure: Tag) -> SubmissionType:
    if has_class(figure, "t-image"):
        return SubmissionType.IMAGE
    if has_class(figure, "t-text"):
        return SubmissionType.TEXT
    return SubmissionType.UNKNOWN


def _rating(figure: Tag) -> Rating:
    if has_class(figure, "r-mature"):
        return Rating.MATURE
    if has_class(figure, "r-adult"):
        return Rating.ADULT
    return Rating.GENERAL


def parse_submission(figure: Tag, date: datetime) -> SubmissionEntry:
    title, submission_id = "", 0
    anchors = figure.select("figcaption a")
    if anchors:
        caption = anchors[0]
        title = element_text(caption) or caption.get("title", "")
        if caption.get("href"):
            submission_id = submission_id_from_link(furaffinity_url(caption["href"]))
    if submission_id == 0:
        raise ParseError("submission with empty id is invalid")

    thumbnail, tags = None, frozenset()
    img = figure.find("img")
    if img is not None:
        src = force_https(img.get("src"))
        if src:
            thumbnail = ThumbnailUrl(src)
        tags = tag_list_to_set(img.get("data-tags"))

    return SubmissionEntry(
        id=submission_id,
        title=title,
        date=date,
        from_user=_submission_user(figure),
        rating=_rating(figure),
        submission_type=_submission_type(figure),
        thumbnail=thumbnail,
        tags=tags,
    )


def parse_submission_page(document: BeautifulSoup, date_is_valid: DateCheck) -> SubmissionPage:
    """Parse the submission inbox, newest first as FA lists it."""
    page = SubmissionPage()
    body = document.find("body")
    if body is None:
        return page

    page.blocked_tags = tag_list_to_set(body.get("data-tag-blocklist"))
    data_element = body.select_one("#js-submissionData")
    if data_element is not None:
        page.submission_data = parse_submission_data(data_element.get_text())

    for section in body.select("#messagecenter-submissions .notifications-by-date"):
        date = _section_date(section)
        if not date_is_valid(EntryType.SUBMISSION, date):
            continue
        for figure in section.find_all("figure"):
            try:
                entry = parse_submission(figure, date)
            except ParseError as exc:
                logger.warning("Error parsing submission: %s", exc)
                continue
            data = page.submission_data.get(entry.id)
            if data is not None:
                entry.submission_data = data
                if data.title:
                    entry.title = data.title
            page.entries.append(entry)
    return page


def parse_submission_content(document: BeautifulSoup, entry: SubmissionEntry) -> Optional[SubmissionContent]:
    """Parse a ``/view/<id>/`` page; returns None when required parts are missing."""
    container = document.select_one(".submission-content")
    if container is None:
        logger.warning("No content container found for submission %d", entry.id)
        return None

    # Only image submissions are supported.
    if entry.submission_type != SubmissionType.IMAGE:
        logger.debug("Skipping content of %s submission %d", entry.submission_type, entry.id)
        return None

    full_view = None
    image = container.select_one(".submission-image img")
    if image is not None:
        full_view = force_https(image.get("data-fullview-src"))
    if full_view is None:
        logger.warning("No full view link found for submission %d", entry.id)
        return None

    popup = container.select_one(".submission-id-container span.popup_date")
    try:
        date = epoch_to_datetime(popup.get("data-time") if popup is not None else None)
    except ParseError as exc:
        logger.warning("Error parsing date for submission content (%d): %s", entry.id, exc)
        return None

    description = container.select_one(".submission-description")
    if description is None:
        logger.warning("No description element found for submission %d", entry.id)
        return None
    remove_headers_and_footers(description, EntryType.SUBMISSION)
    text = trim_html_text(description.get_text())
    if not text:
        logger.warning("Empty description for submission %d", entry.id)

    return SubmissionContent(
        id=entry.id,
        description_text=text,
        description_html=description.decode_contents(),
        full_view=full_view,
        thumbnail=entry.thumbnail,
        date=date,
    )
