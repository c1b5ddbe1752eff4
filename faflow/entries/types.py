"""
Entry type taxonomy.

Every entry the collector produces belongs to exactly one `EntryType`.
The integer values are persisted in the known-entry store, so they must
never be renumbered.  `EntryType.INVALID` is a sentinel: it is never a
valid persisted value and never appears on an emitted entry.
"""

from __future__ import annotations

from enum import IntEnum
from typing import List


class EntryType(IntEnum):
    INVALID = 0
    NOTE = 1
    SUBMISSION = 2
    SUBMISSION_COMMENT = 3
    JOURNAL = 4
    JOURNAL_COMMENT = 5

    @property
    def display_name(self) -> str:
        """Human readable name of the entry type."""
        try:
            return _DISPLAY_NAMES[self]
        except KeyError:
            raise ValueError(f"unreachable entry type {int(self)}") from None

    def filter_env_var(self) -> str:
        """Name of the environment variable holding this type's user whitelist.

        Both comment types share one key.  The sentinel has none and
        yields an empty string.
        """
        return _FILTER_ENV_VARS.get(self, "")

    def filter_config_key(self) -> str:
        """Key of this type's whitelist inside the YAML ``user_filters`` mapping."""
        return _FILTER_CONFIG_KEYS.get(self, "")

    @classmethod
    def from_name(cls, raw: str) -> "EntryType":
        """Parse a CLI token such as ``note`` or ``journal-comment``."""
        token = raw.strip().lower().replace("_", "-").replace(" ", "-")
        for entry_type in valid_entry_types():
            if entry_type.display_name.lower().replace(" ", "-") == token:
                return entry_type
        raise ValueError(f"unknown entry type '{raw}'")

    def __str__(self) -> str:
        return self.display_name


_DISPLAY_NAMES = {
    EntryType.INVALID: "INVALID",
    EntryType.NOTE: "Note",
    EntryType.SUBMISSION: "Submission",
    EntryType.SUBMISSION_COMMENT: "Submission Comment",
    EntryType.JOURNAL: "Journal",
    EntryType.JOURNAL_COMMENT: "Journal Comment",
}

_FILTER_ENV_VARS = {
    EntryType.NOTE: "FILTER_USERS_NOTES",
    EntryType.SUBMISSION: "FILTER_USERS_SUBMISSIONS",
    EntryType.SUBMISSION_COMMENT: "FILTER_USERS_COMMENTS",
    EntryType.JOURNAL: "FILTER_USERS_JOURNALS",
    EntryType.JOURNAL_COMMENT: "FILTER_USERS_COMMENTS",
}

_FILTER_CONFIG_KEYS = {
    EntryType.NOTE: "notes",
    EntryType.SUBMISSION: "submissions",
    EntryType.SUBMISSION_COMMENT: "comments",
    EntryType.JOURNAL: "journals",
    EntryType.JOURNAL_COMMENT: "comments",
}


def valid_entry_types() -> List[EntryType]:
    """All non-sentinel entry types in declaration order."""
    return [
        EntryType.NOTE,
        EntryType.SUBMISSION,
        EntryType.SUBMISSION_COMMENT,
        EntryType.JOURNAL,
        EntryType.JOURNAL_COMMENT,
    ]


def entry_types() -> List[EntryType]:
    return valid_entry_types() + [EntryType.INVALID]


# Entry types served by the "other messages" page.
OTHER_ENTRY_TYPES = (
    EntryType.SUBMISSION_COMMENT,
    EntryType.JOURNAL,
    EntryType.JOURNAL_COMMENT,
)
