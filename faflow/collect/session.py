"""
Per-user collector session.

A `CollectorSession` is built fresh for every user at the start of a
pass and discarded afterwards.  It holds everything the extractors and
filters need to know about that user for the duration of the pass and
is never shared across users or passes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional

from ..config import AppConfig
from ..entries.types import EntryType
from ..filters.users import UserFilter
from ..storage.database import User


@dataclass(frozen=True)
class CollectorSession:
    user: User
    limit_concurrency: int = 4
    only_since_registration: bool = True
    only_since_type_enabled: bool = True
    iterate_submissions_backwards: bool = False
    respect_blocked_tags: bool = True
    user_filter: UserFilter = field(default_factory=UserFilter)

    @classmethod
    def for_user(cls, user: User, config: AppConfig) -> "CollectorSession":
        return cls(
            user=user,
            limit_concurrency=config.limit_concurrency,
            only_since_registration=config.only_since_registration,
            only_since_type_enabled=config.only_since_type_enabled,
            iterate_submissions_backwards=config.iterate_submissions_backwards,
            respect_blocked_tags=config.respect_blocked_tags,
            user_filter=config.user_filter(),
        )

    @property
    def user_id(self) -> int:
        return self.user.id

    @property
    def registration_date(self) -> datetime:
        return self.user.created_at

    def type_enabled_since(self, entry_type: EntryType) -> Optional[datetime]:
        return self.user.type_enabled_since(entry_type)

    def date_is_valid(self, entry_type: EntryType, date: Optional[datetime]) -> bool:
        """Apply the registration and type-enabled date floors."""
        if date is None:
            return False
        if self.only_since_registration and date < self.registration_date:
            return False
        if self.only_since_type_enabled:
            enabled_at = self.type_enabled_since(entry_type)
            if enabled_at is not None and date < enabled_at:
                return False
        return True

    def is_whitelisted(self, entry_type: EntryType, username: str) -> bool:
        return self.user_filter.is_whitelisted(entry_type, username)

    def cookies(self) -> Dict[str, str]:
        return dict(self.user.cookies)

    def notes_cookies(self) -> Dict[str, str]:
        cookies = self.cookies()
        cookies["folder"] = "unread" if self.user.unread_notes_only else "inbox"
        return cookies
