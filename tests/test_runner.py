"""
Tests for the collection pass runner, using a real SQLite store and the
fake fetcher as fetcher factory.
"""

from __future__ import annotations

import asyncio
from typing import List, Tuple

import pytest

from conftest import (
    EPOCH_NEW,
    REGISTERED,
    FakeFetcher,
    note_content_page,
    note_node,
    notes_page,
    others_page,
    submission_figure,
    submission_view_page,
    submissions_page,
)

from faflow.collect.collector import FurAffinityCollector
from faflow.collect.runner import SessionError, check_login, collect_for_user, run_pass, watch
from faflow.collect.session import CollectorSession
from faflow.config import AppConfig
from faflow.entries.models import Entry
from faflow.entries.types import EntryType, valid_entry_types
from faflow.extract.submissions import SUBMISSIONS_PATH
from faflow.notify import LogNotifier
from faflow.storage.database import Database, User

SETTINGS = "/controls/settings"
LOGGED_OUT = (
    '<html><body><div id="site-content"><div class="notice-message">'
    "System Message - please log in</div></div></body></html>"
)


class RecordingNotifier(LogNotifier):
    def __init__(self, store: Database, fail_for: Tuple[int, ...] = ()) -> None:
        super().__init__(store)
        self.delivered: List[Tuple[int, EntryType, int]] = []
        self.invalid_credentials: List[int] = []
        self.fail_for = fail_for

    async def deliver(self, user: User, entry: Entry) -> None:
        if user.id in self.fail_for:
            raise RuntimeError("delivery failed")
        await super().deliver(user, entry)
        self.delivered.append((user.id, entry.entry_type, entry.id))

    async def notify_invalid_credentials(self, user: User) -> None:
        await super().notify_invalid_credentials(user)
        self.invalid_credentials.append(user.id)


def site_pages(settings: str = "<html><body>Settings</body></html>"):
    return {
        SETTINGS: settings,
        "/msg/pms/1/": notes_page(note_node(100)),
        "/msg/pms/1/100/#message": note_content_page("hello"),
        "/msg/others/": others_page(),
        SUBMISSIONS_PATH: submissions_page([(EPOCH_NEW, [submission_figure(10)])]),
        "/view/10/": submission_view_page(full_view="//d.furaffinity.net/10.png"),
    }


def register(db: Database, cookies: bool = True) -> User:
    user = db.add_user(created_at=REGISTERED)
    if cookies:
        db.set_cookie(user.id, "a", "cookie-a")
        db.set_cookie(user.id, "b", "cookie-b")
    for entry_type in valid_entry_types():
        db.enable_entry_type(user.id, entry_type, enabled_at=REGISTERED)
    return db.get_user(user.id)


def test_pass_delivers_new_entries_once(db: Database) -> None:
    user = register(db)
    notifier = RecordingNotifier(db)
    fetcher = FakeFetcher(site_pages())

    counts = asyncio.run(run_pass(db, AppConfig(), notifier, fetcher_factory=fetcher))
    assert counts == {user.id: 2}
    assert notifier.delivered == [(user.id, EntryType.NOTE, 100), (user.id, EntryType.SUBMISSION, 10)]
    assert db.exists(EntryType.NOTE, 100, user.id)
    assert db.exists(EntryType.SUBMISSION, 10, user.id)
    assert fetcher.init_cookies == {"a": "cookie-a", "b": "cookie-b"}
    assert fetcher.closed

    counts = asyncio.run(run_pass(db, AppConfig(), notifier, fetcher_factory=FakeFetcher(site_pages())))
    assert counts == {user.id: 0}


def test_disabled_surfaces_are_not_requested(db: Database) -> None:
    user = register(db)
    db.enable_entry_type(user.id, EntryType.NOTE, enabled=False)
    fetcher = FakeFetcher(site_pages())
    config = AppConfig(enable_submissions=False, enable_login_check=False)

    delivered = asyncio.run(collect_for_user(db.get_user(user.id), config, db, RecordingNotifier(db), None, fetcher))
    assert delivered == 0
    assert fetcher.requests == ["https://www.furaffinity.net/msg/others/"]


def test_submissions_without_content(db: Database) -> None:
    user = register(db)
    fetcher = FakeFetcher(site_pages())
    config = AppConfig(fetch_submission_content=False)
    notifier = RecordingNotifier(db)
    asyncio.run(collect_for_user(user, config, db, notifier, None, fetcher))
    assert (user.id, EntryType.SUBMISSION, 10) in notifier.delivered
    assert "https://www.furaffinity.net/view/10/" not in fetcher.requests


def test_invalid_credentials_are_reported_once(db: Database) -> None:
    user = register(db)
    notifier = RecordingNotifier(db)

    for _ in range(2):
        counts = asyncio.run(
            run_pass(db, AppConfig(), notifier, fetcher_factory=FakeFetcher(site_pages(LOGGED_OUT)))
        )
        assert counts == {user.id: 0}
    assert notifier.invalid_credentials == [user.id]
    assert db.get_user(user.id).invalid_credentials_notified

    asyncio.run(run_pass(db, AppConfig(), notifier, fetcher_factory=FakeFetcher(site_pages())))
    assert not db.get_user(user.id).invalid_credentials_notified
    assert len(notifier.delivered) == 2


def test_missing_cookies_raise_session_error(db: Database) -> None:
    user = register(db, cookies=False)
    fetcher = FakeFetcher(site_pages())
    with pytest.raises(SessionError):
        asyncio.run(collect_for_user(user, AppConfig(), db, RecordingNotifier(db), None, fetcher))
    assert fetcher.requests == []


def test_unreachable_login_check_skips_without_notice(db: Database) -> None:
    user = register(db)
    notifier = RecordingNotifier(db)
    fetcher = FakeFetcher(site_pages(), failing=[SETTINGS])
    counts = asyncio.run(run_pass(db, AppConfig(), notifier, fetcher_factory=fetcher))
    assert counts == {user.id: 0}
    assert notifier.invalid_credentials == []
    assert not db.get_user(user.id).invalid_credentials_notified


def test_failures_are_isolated_per_user(db: Database) -> None:
    first = register(db)
    second = register(db)
    notifier = RecordingNotifier(db, fail_for=(first.id,))
    counts = asyncio.run(run_pass(db, AppConfig(), notifier, fetcher_factory=FakeFetcher(site_pages())))
    assert counts == {first.id: 0, second.id: 2}


def test_check_login_resets_marker(db: Database) -> None:
    user = register(db)
    db.set_credentials_valid(user.id, False)
    user = db.get_user(user.id)
    collector = FurAffinityCollector(CollectorSession(user=user), FakeFetcher(site_pages()), db)
    asyncio.run(check_login(collector, user, db))
    assert not db.get_user(user.id).invalid_credentials_notified


class StoppingNotifier(RecordingNotifier):
    """Sets the stop event after the first delivery."""

    stop_event: asyncio.Event

    async def deliver(self, user: User, entry: Entry) -> None:
        await super().deliver(user, entry)
        self.stop_event.set()


def test_watch_stops_when_signalled(db: Database) -> None:
    register(db)
    notifier = StoppingNotifier(db)

    async def run() -> int:
        notifier.stop_event = asyncio.Event()
        return await watch(db, AppConfig(), notifier, notifier.stop_event, fetcher_factory=FakeFetcher(site_pages()))

    assert asyncio.run(run()) == 1
    # Stopped before the other surfaces.
    assert [entry_type for _, entry_type, _ in notifier.delivered] == [EntryType.NOTE]


def test_watch_does_nothing_when_already_stopped(db: Database) -> None:
    register(db)

    async def run() -> int:
        stop_event = asyncio.Event()
        stop_event.set()
        return await watch(db, AppConfig(), RecordingNotifier(db), stop_event, fetcher_factory=FakeFetcher())

    assert asyncio.run(run()) == 0


def test_unread_notes_are_restored_when_delivery_fails(db: Database) -> None:
    user = register(db)
    pages = site_pages()
    pages["/msg/pms/1/"] = notes_page(note_node(100, unread=True), note_node(101, unread=True))
    pages["/msg/pms/1/101/#message"] = note_content_page("second")
    fetcher = FakeFetcher(pages)
    notifier = RecordingNotifier(db, fail_for=(user.id,))

    with pytest.raises(RuntimeError, match="delivery failed"):
        asyncio.run(collect_for_user(user, AppConfig(), db, notifier, None, fetcher))

    assert len(fetcher.posts) == 1
    assert fetcher.closed_at_post == [False]
    _, form = fetcher.posts[0]
    assert sorted(value for name, value in form if name == "items[]") == ["100", "101"]
