"""
Small helpers shared by the extractors and the entry model.

These functions deal with the parts of FurAffinity's markup that are
plain strings: profile links, tag lists, epoch timestamps, human
readable dates in the site's timezone and thumbnail URLs whose path
encodes the rendered size.
"""

from __future__ import annotations

import html
import logging
import re
from datetime import datetime, timezone
from typing import FrozenSet, Iterable, Optional
from urllib.parse import urlparse, urlunparse
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

FA_TIMEZONE = ZoneInfo("America/Los_Angeles")

THUMBNAIL_SIZE_LARGE = 600
THUMBNAIL_SIZE_SMALL = 300

THUMBNAIL_SIZE_RE = re.compile(r"(.*@)(\d*)(-.*)")
# FA allows letters, numbers, dashes, dots and tildes in usernames.
PROFILE_USERNAME_RE = re.compile(r".*/user/([\w\-.~]*)/*")


class ParseError(ValueError):
    """A value could not be recovered from the page markup."""


class ThumbnailUrl:
    """A thumbnail URL that can be re-targeted to another rendered size."""

    def __init__(self, url: str) -> None:
        self.url = url

    @property
    def path(self) -> str:
        return urlparse(self.url).path

    @property
    def size(self) -> int:
        match = THUMBNAIL_SIZE_RE.match(self.path)
        if match and match.group(2):
            return int(match.group(2))
        return 0

    def with_size(self, size: int) -> "ThumbnailUrl":
        parsed = urlparse(self.url)
        new_path = THUMBNAIL_SIZE_RE.sub(rf"\g<1>{size}\g<3>", parsed.path)
        return ThumbnailUrl(urlunparse(parsed._replace(path=new_path)))

    def with_size_large(self) -> "ThumbnailUrl":
        return self.with_size(THUMBNAIL_SIZE_LARGE)

    def with_size_small(self) -> "ThumbnailUrl":
        return self.with_size(THUMBNAIL_SIZE_SMALL)

    def __str__(self) -> str:
        return self.url

    def __repr__(self) -> str:
        return f"ThumbnailUrl({self.url!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ThumbnailUrl) and other.url == self.url

    def __hash__(self) -> int:
        return hash(self.url)


def normalize_username(user: str) -> str:
    """Case-fold and trim a username so set lookups are stable."""
    return user.strip().lower()


def username_from_profile_link(link: Optional[str]) -> str:
    """Return the username portion of a ``/user/<name>/`` profile link."""
    if not link:
        raise ParseError("profile link is empty")
    match = PROFILE_USERNAME_RE.match(urlparse(link).path)
    if not match:
        raise ParseError(f"no username found in profile link '{link}'")
    username = match.group(1)
    if not username:
        raise ParseError(f"empty username in profile link '{link}'")
    return username


def tag_list_to_set(raw: Optional[str]) -> FrozenSet[str]:
    """Split a whitespace separated tag attribute into a set of tags."""
    if not raw:
        return frozenset()
    return frozenset(tag.lower() for tag in raw.split() if tag)


def epoch_to_datetime(raw: Optional[str]) -> datetime:
    """Convert a Unix timestamp attribute (seconds) into an aware UTC datetime."""
    if raw is None or not raw.strip():
        raise ParseError("empty timestamp")
    try:
        return datetime.fromtimestamp(int(raw.strip()), tz=timezone.utc)
    except (ValueError, OverflowError, OSError) as exc:
        raise ParseError(f"invalid timestamp '{raw}'") from exc


def parse_site_date(text: str, layouts: Iterable[str]) -> datetime:
    """Parse a human readable date shown in the site's fixed timezone.

    Each layout is tried in order; the result is converted to UTC.
    """
    cleaned = " ".join(text.split())
    for layout in layouts:
        try:
            local = datetime.strptime(cleaned, layout)
        except ValueError:
            continue
        return local.replace(tzinfo=FA_TIMEZONE).astimezone(timezone.utc)
    raise ParseError(f"unparseable date '{text}'")


def trim_html_text(text: str) -> str:
    return text.strip("\n ")


def unescape_html(text: str) -> str:
    return html.unescape(text)


def force_https(url: Optional[str]) -> Optional[str]:
    """Give scheme-relative URLs (``//t.furaffinity.net/...``) an explicit scheme."""
    if not url:
        return None
    parsed = urlparse(url)
    if parsed.scheme:
        return url
    return urlunparse(parsed._replace(scheme="https"))
