"""
Entry subsystem for faflow.

This package defines what the collector produces.  `EntryType` is the
closed taxonomy of notification kinds, persisted by integer value in
the known-entry store.  The entry variants (`NoteEntry`,
`SubmissionEntry`, `CommentEntry`, `JournalEntry`) share the `Entry`
base class and carry an optional, attach-once content payload.

`tools` holds the string-level helpers (username normalization,
profile links, tag sets, site dates and thumbnail resizing) used by
the extractors.
"""

from .types import EntryType, OTHER_ENTRY_TYPES, entry_types, valid_entry_types  # noqa: F401
from .models import (  # noqa: F401
    CommentContent,
    CommentEntry,
    Entry,
    FurAffinityUser,
    JournalContent,
    JournalEntry,
    NoteContent,
    NoteEntry,
    Rating,
    SubmissionContent,
    SubmissionData,
    SubmissionEntry,
    SubmissionType,
)
from .tools import ParseError, ThumbnailUrl, normalize_username  # noqa: F401
