"""
Tests for the entry type taxonomy.

The integer values are persisted, so they are pinned here together
with the display names, the whitelist keys and the CLI token parser.
"""

from __future__ import annotations

import pytest

from faflow.entries.types import OTHER_ENTRY_TYPES, EntryType, entry_types, valid_entry_types


def test_persisted_values_are_stable() -> None:
    assert [int(t) for t in entry_types()] == [1, 2, 3, 4, 5, 0]


def test_valid_entry_types_exclude_sentinel_in_declaration_order() -> None:
    assert valid_entry_types() == [
        EntryType.NOTE,
        EntryType.SUBMISSION,
        EntryType.SUBMISSION_COMMENT,
        EntryType.JOURNAL,
        EntryType.JOURNAL_COMMENT,
    ]
    assert EntryType.INVALID not in valid_entry_types()


def test_display_names() -> None:
    assert EntryType.NOTE.display_name == "Note"
    assert EntryType.SUBMISSION_COMMENT.display_name == "Submission Comment"
    assert str(EntryType.JOURNAL_COMMENT) == "Journal Comment"
    assert EntryType.INVALID.display_name == "INVALID"


def test_filter_env_var_shared_by_comment_types() -> None:
    assert EntryType.NOTE.filter_env_var() == "FILTER_USERS_NOTES"
    assert EntryType.SUBMISSION.filter_env_var() == "FILTER_USERS_SUBMISSIONS"
    assert EntryType.JOURNAL.filter_env_var() == "FILTER_USERS_JOURNALS"
    assert EntryType.SUBMISSION_COMMENT.filter_env_var() == "FILTER_USERS_COMMENTS"
    assert EntryType.JOURNAL_COMMENT.filter_env_var() == EntryType.SUBMISSION_COMMENT.filter_env_var()
    assert EntryType.INVALID.filter_env_var() == ""
    assert EntryType.JOURNAL_COMMENT.filter_config_key() == "comments"


@pytest.mark.parametrize(
    "token, expected",
    [
        ("note", EntryType.NOTE),
        ("Submission", EntryType.SUBMISSION),
        ("submission-comment", EntryType.SUBMISSION_COMMENT),
        ("journal_comment", EntryType.JOURNAL_COMMENT),
        (" Journal ", EntryType.JOURNAL),
    ],
)
def test_from_name(token: str, expected: EntryType) -> None:
    assert EntryType.from_name(token) is expected


@pytest.mark.parametrize("token", ["invalid", "notes", ""])
def test_from_name_rejects_unknown_tokens(token: str) -> None:
    with pytest.raises(ValueError):
        EntryType.from_name(token)


def test_other_entry_types() -> None:
    assert set(OTHER_ENTRY_TYPES) == {
        EntryType.SUBMISSION_COMMENT,
        EntryType.JOURNAL,
        EntryType.JOURNAL_COMMENT,
    }
