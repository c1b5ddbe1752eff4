"""
SQLite store for users and known entries.

The collector reads from this store (`exists`) to decide whether an
entry is new; the notifier writes to it (`create_known_entry`) after a
delivery.  User records hold what a collection pass needs: the
registration date, the FurAffinity session cookies, the enabled entry
types with the time each was enabled, the unread-notes-only preference
and the time the user was last told their credentials are invalid.

Timestamps are stored as ISO 8601 strings in UTC.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Union

from ..entries.types import EntryType

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _to_db(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _from_db(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class User:
    id: int
    created_at: datetime
    chat_id: Optional[int] = None
    unread_notes_only: bool = True
    timezone: str = "UTC"
    invalid_credentials_sent_at: Optional[datetime] = None
    cookies: Dict[str, str] = field(default_factory=dict)
    entry_types: Dict[EntryType, datetime] = field(default_factory=dict)

    def enabled_entry_types(self) -> List[EntryType]:
        return sorted(self.entry_types)

    def type_enabled_since(self, entry_type: EntryType) -> Optional[datetime]:
        return self.entry_types.get(entry_type)

    @property
    def invalid_credentials_notified(self) -> bool:
        return self.invalid_credentials_sent_at is not None


class Database:
    """SQLite database wrapper for users and known entries."""

    SCHEMA = """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        chat_id INTEGER UNIQUE,
        created_at TEXT NOT NULL,
        unread_notes_only INTEGER NOT NULL DEFAULT 1,
        timezone TEXT NOT NULL DEFAULT 'UTC',
        invalid_credentials_sent_at TEXT
    );

    CREATE TABLE IF NOT EXISTS user_cookies (
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        name TEXT NOT NULL,
        value TEXT NOT NULL,
        PRIMARY KEY (user_id, name)
    );

    CREATE TABLE IF NOT EXISTS user_entry_types (
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        entry_type INTEGER NOT NULL CHECK (entry_type > 0),
        enabled_at TEXT NOT NULL,
        PRIMARY KEY (user_id, entry_type)
    );

    CREATE TABLE IF NOT EXISTS known_entries (
        entry_type INTEGER NOT NULL CHECK (entry_type > 0),
        id INTEGER NOT NULL,
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        notified_at TEXT NOT NULL,
        sent_date TEXT,
        PRIMARY KEY (entry_type, id, user_id)
    );

    CREATE INDEX IF NOT EXISTS idx_known_entries_user ON known_entries(user_id);
    """

    def __init__(self, db_path: Union[str, Path]) -> None:
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(self.db_path)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON")
        self._init_schema()

    def _init_schema(self) -> None:
        self.conn.executescript(self.SCHEMA)
        self.conn.commit()

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # Known entries

    def exists(self, entry_type: EntryType, entry_id: int, user_id: int) -> bool:
        cursor = self.conn.execute(
            "SELECT 1 FROM known_entries WHERE entry_type = ? AND id = ? AND user_id = ?",
            (int(entry_type), entry_id, user_id),
        )
        return cursor.fetchone() is not None

    def create_known_entry(
        self,
        entry_type: EntryType,
        entry_id: int,
        user_id: int,
        notified_at: Optional[datetime] = None,
        sent_date: Optional[datetime] = None,
    ) -> None:
        if entry_type == EntryType.INVALID:
            raise ValueError("cannot record an entry of the invalid type")
        self.conn.execute(
            """INSERT OR IGNORE INTO known_entries
               (entry_type, id, user_id, notified_at, sent_date)
               VALUES (?, ?, ?, ?, ?)""",
            (int(entry_type), entry_id, user_id, _to_db(notified_at or utc_now()), _to_db(sent_date)),
        )
        self.conn.commit()

    # Users

    def add_user(
        self,
        chat_id: Optional[int] = None,
        *,
        unread_notes_only: bool = True,
        timezone_name: str = "UTC",
        created_at: Optional[datetime] = None,
    ) -> User:
        cursor = self.conn.execute(
            """INSERT INTO users (chat_id, created_at, unread_notes_only, timezone)
               VALUES (?, ?, ?, ?)""",
            (chat_id, _to_db(created_at or utc_now()), int(unread_notes_only), timezone_name),
        )
        self.conn.commit()
        logger.info("Added user %d", cursor.lastrowid)
        user = self.get_user(cursor.lastrowid)
        assert user is not None
        return user

    def _load_user(self, row: sqlite3.Row) -> User:
        user = User(
            id=row["id"],
            chat_id=row["chat_id"],
            created_at=_from_db(row["created_at"]),
            unread_notes_only=bool(row["unread_notes_only"]),
            timezone=row["timezone"],
            invalid_credentials_sent_at=_from_db(row["invalid_credentials_sent_at"]),
        )
        for cookie in self.conn.execute(
            "SELECT name, value FROM user_cookies WHERE user_id = ?", (user.id,)
        ):
            user.cookies[cookie["name"]] = cookie["value"]
        for enabled in self.conn.execute(
            "SELECT entry_type, enabled_at FROM user_entry_types WHERE user_id = ?", (user.id,)
        ):
            user.entry_types[EntryType(enabled["entry_type"])] = _from_db(enabled["enabled_at"])
        return user

    def get_user(self, user_id: int) -> Optional[User]:
        row = self.conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return self._load_user(row) if row is not None else None

    def list_users(self) -> List[User]:
        rows = self.conn.execute("SELECT * FROM users ORDER BY id").fetchall()
        return [self._load_user(row) for row in rows]

    def set_unread_notes_only(self, user_id: int, enabled: bool) -> None:
        self.conn.execute("UPDATE users SET unread_notes_only = ? WHERE id = ?", (int(enabled), user_id))
        self.conn.commit()

    def set_cookie(self, user_id: int, name: str, value: str) -> None:
        self.conn.execute(
            """INSERT INTO user_cookies (user_id, name, value) VALUES (?, ?, ?)
               ON CONFLICT (user_id, name) DO UPDATE SET value = excluded.value""",
            (user_id, name, value),
        )
        self.conn.commit()

    def enable_entry_type(
        self,
        user_id: int,
        entry_type: EntryType,
        enabled: bool = True,
        enabled_at: Optional[datetime] = None,
    ) -> None:
        """Enable or disable an entry type; re-enabling keeps the original timestamp."""
        if entry_type == EntryType.INVALID:
            raise ValueError("cannot enable the invalid entry type")
        if enabled:
            self.conn.execute(
                """INSERT OR IGNORE INTO user_entry_types (user_id, entry_type, enabled_at)
                   VALUES (?, ?, ?)""",
                (user_id, int(entry_type), _to_db(enabled_at or utc_now())),
            )
        else:
            self.conn.execute(
                "DELETE FROM user_entry_types WHERE user_id = ? AND entry_type = ?",
                (user_id, int(entry_type)),
            )
        self.conn.commit()

    def set_credentials_valid(self, user_id: int, valid: bool) -> None:
        """Clear the invalid-credentials marker, or stamp it with the current time."""
        sent_at = None if valid else _to_db(utc_now())
        self.conn.execute(
            "UPDATE users SET invalid_credentials_sent_at = ? WHERE id = ?", (sent_at, user_id)
        )
        self.conn.commit()
