"""
Entry model.

An entry is one notification-worthy item recovered from FurAffinity.
There are four variants (notes, submissions, comments and journals)
sharing a read-only capability set defined on `Entry`:

* ``entry_type`` – the `EntryType` discriminant, never the sentinel
* ``id`` – the site's numeric identifier, never 0 for emitted entries
* ``date`` – the best available timestamp (aware, UTC)
* ``link`` / ``from_user`` / ``title``
* ``content`` / ``has_content`` / ``set_content``

Content is optional and attached exactly once, after a successful
fetch of the entry's detail page.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import ClassVar, FrozenSet, Optional, Tuple, Type

from .tools import ThumbnailUrl
from .types import EntryType

DEFAULT_USERNAME = "UNKNOWN"
FA_BASE_URL = "https://www.furaffinity.net"


class Rating(IntEnum):
    GENERAL = 0
    MATURE = 1
    ADULT = 2

    @property
    def symbol(self) -> str:
        return {
            Rating.GENERAL: "\u2b1c",
            Rating.MATURE: "\U0001f7e6",
            Rating.ADULT: "\U0001f7e5",
        }[self]

    def __str__(self) -> str:
        return self.name.capitalize()


class SubmissionType(IntEnum):
    UNKNOWN = 0
    IMAGE = 1
    TEXT = 2

    def __str__(self) -> str:
        return self.name.capitalize()


@dataclass
class FurAffinityUser:
    """Author of an entry."""

    display_name: str = ""
    username: str = DEFAULT_USERNAME
    profile_url: Optional[str] = None

    @property
    def name(self) -> str:
        return self.display_name or self.username

    @property
    def is_valid(self) -> bool:
        return self.name != DEFAULT_USERNAME


@dataclass(frozen=True)
class NoteContent:
    id: int
    text: str


@dataclass(frozen=True)
class CommentContent:
    id: int
    text: str


@dataclass(frozen=True)
class JournalContent:
    id: int
    text: str


@dataclass(frozen=True)
class SubmissionContent:
    id: int
    description_text: str
    description_html: str
    full_view: Optional[str]
    thumbnail: Optional[ThumbnailUrl]
    date: Optional[datetime]

    @property
    def text(self) -> str:
        return self.description_text


@dataclass
class SubmissionData:
    """Per-submission metadata embedded in the submission inbox as JSON."""

    title: str = ""
    description: str = ""
    username: str = ""
    lower: str = ""
    avatar_mtime: int = 0


@dataclass(eq=False)
class Entry:
    """Shared base of all entry variants."""

    content_types: ClassVar[Tuple[Type, ...]] = ()

    id: int
    title: str = ""
    date: Optional[datetime] = None
    link: Optional[str] = None
    from_user: FurAffinityUser = field(default_factory=FurAffinityUser)
    _content: Optional[object] = field(default=None, init=False, repr=False)

    @property
    def entry_type(self) -> EntryType:
        raise NotImplementedError

    @property
    def content(self):
        return self._content

    @property
    def has_content(self) -> bool:
        return self._content is not None

    def set_content(self, content) -> None:
        if not isinstance(content, self.content_types):
            raise TypeError(
                f"{type(content).__name__} is not valid content for {type(self).__name__}"
            )
        if self._content is not None:
            raise RuntimeError(f"content already attached to {self.entry_type} {self.id}")
        self._content = content

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id}, title={self.title!r}, from={self.from_user.name!r})"


@dataclass(eq=False, repr=False)
class NoteEntry(Entry):
    content_types: ClassVar[Tuple[Type, ...]] = (NoteContent,)

    was_unread: bool = False

    @property
    def entry_type(self) -> EntryType:
        return EntryType.NOTE


@dataclass(eq=False, repr=False)
class CommentEntry(Entry):
    content_types: ClassVar[Tuple[Type, ...]] = (CommentContent,)

    comment_type: EntryType = EntryType.SUBMISSION_COMMENT

    def __post_init__(self) -> None:
        if self.comment_type not in (EntryType.SUBMISSION_COMMENT, EntryType.JOURNAL_COMMENT):
            raise ValueError(f"{self.comment_type} is not a comment type")

    @property
    def entry_type(self) -> EntryType:
        return self.comment_type


@dataclass(eq=False, repr=False)
class JournalEntry(Entry):
    content_types: ClassVar[Tuple[Type, ...]] = (JournalContent,)

    @property
    def entry_type(self) -> EntryType:
        return EntryType.JOURNAL


@dataclass(eq=False, repr=False)
class SubmissionEntry(Entry):
    content_types: ClassVar[Tuple[Type, ...]] = (SubmissionContent,)

    rating: Rating = Rating.GENERAL
    submission_type: SubmissionType = SubmissionType.UNKNOWN
    thumbnail: Optional[ThumbnailUrl] = None
    tags: FrozenSet[str] = frozenset()
    blocked_reasons: FrozenSet[str] = frozenset()
    submission_data: Optional[SubmissionData] = None
    listing_date: Optional[datetime] = field(default=None, init=False)

    def __post_init__(self) -> None:
        # Submissions are always addressed by their view page.
        self.link = f"{FA_BASE_URL}/view/{self.id}/"
        self.listing_date = self.date

    @property
    def entry_type(self) -> EntryType:
        return EntryType.SUBMISSION

    def set_content(self, content) -> None:
        super().set_content(content)
        # The view page has the exact posting time.
        if content.date is not None:
            self.date = content.date

    @property
    def is_blocked(self) -> bool:
        return len(self.blocked_reasons) > 0

    @property
    def description(self) -> str:
        if self.content is not None:
            return self.content.description_text
        if self.submission_data is not None:
            return self.submission_data.description
        return ""

    @property
    def full_view(self) -> Optional[str]:
        if self.content is None:
            return None
        return self.content.full_view
