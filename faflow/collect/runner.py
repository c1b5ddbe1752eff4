"""
Collection pass runner.

A pass visits every registered user concurrently.  For each user a
fresh `CollectorSession` and `DocumentFetcher` are opened, the session
cookies are checked against the settings page, and the enabled
surfaces are collected in order (notes, other messages, submissions),
handing every new entry to the notifier.

Failures are isolated per user: invalid credentials skip the user for
the pass (and inform them once until the cookies work again), and any
other error is logged with its traceback without affecting the other
users.  `watch` repeats passes every ``update_interval`` seconds until
its stop event is set.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Callable, Dict, List, Optional, Tuple

from ..config import AppConfig
from ..entries.models import Entry
from ..entries.types import OTHER_ENTRY_TYPES, EntryType
from ..notify import Notifier
from ..storage.database import Database, User
from .collector import FurAffinityCollector
from .fetcher import DocumentFetcher, FetchError
from .session import CollectorSession

logger = logging.getLogger(__name__)

FetcherFactory = Callable[..., DocumentFetcher]


class SessionError(Exception):
    """The FurAffinity cookies of a user are missing or no longer valid."""

    def __init__(self, user_id: int, message: str = "") -> None:
        super().__init__(message or f"user {user_id} is not logged in to FurAffinity")
        self.user_id = user_id


def _stopped(stop_event: Optional[asyncio.Event]) -> bool:
    return stop_event is not None and stop_event.is_set()


def _surfaces(
    collector: FurAffinityCollector, user: User, config: AppConfig
) -> List[Tuple[str, Callable[[], AsyncIterator[Entry]]]]:
    enabled = set(user.enabled_entry_types())
    surfaces: List[Tuple[str, Callable[[], AsyncIterator[Entry]]]] = []
    if EntryType.NOTE in enabled:
        surfaces.append(("notes", collector.get_new_notes_with_content))
    other_types = [t for t in OTHER_ENTRY_TYPES if t in enabled]
    if config.enable_other_entries and other_types:
        surfaces.append(("other messages", lambda: collector.get_new_other_entries_with_content(*other_types)))
    if config.enable_submissions and EntryType.SUBMISSION in enabled:
        if config.fetch_submission_content:
            surfaces.append(("submissions", collector.get_new_submission_entries_with_content))
        else:
            surfaces.append(("submissions", collector.get_new_submission_entries))
    return surfaces


async def check_login(collector: FurAffinityCollector, user: User, store: Database) -> None:
    """Raise SessionError unless the user's cookies are valid."""
    if not user.cookies:
        raise SessionError(user.id, f"user {user.id} has no cookies")
    if not await collector.is_logged_in():
        raise SessionError(user.id)
    if user.invalid_credentials_notified:
        logger.info("Credentials of user %d are valid again", user.id)
        store.set_credentials_valid(user.id, True)


async def collect_for_user(
    user: User,
    config: AppConfig,
    store: Database,
    notifier: Notifier,
    stop_event: Optional[asyncio.Event] = None,
    fetcher_factory: FetcherFactory = DocumentFetcher,
) -> int:
    """Run one pass for ``user`` and return the number of delivered entries."""
    if not user.entry_types:
        logger.debug("User %d has no entry types enabled", user.id)
        return 0

    session = CollectorSession.for_user(user, config)
    delivered = 0
    async with fetcher_factory(
        session.cookies(), user_agent=config.user_agent, timeout=config.request_timeout
    ) as fetcher:
        collector = FurAffinityCollector(session, fetcher, store)
        if config.enable_login_check:
            await check_login(collector, user, store)

        for name, stream in _surfaces(collector, user, config):
            if _stopped(stop_event):
                logger.info("Stopping pass for user %d before %s", user.id, name)
                break
            count = 0
            entries = stream()
            try:
                async for entry in entries:
                    await notifier.deliver(user, entry)
                    count += 1
            finally:
                # Runs the surface's cleanup (mark-unread) while the fetcher is open.
                await entries.aclose()
            logger.info("Delivered %d new %s to user %d", count, name, user.id)
            delivered += count
    return delivered


async def _report_invalid_credentials(user: User, store: Database, notifier: Notifier) -> None:
    if user.invalid_credentials_notified:
        return
    try:
        await notifier.notify_invalid_credentials(user)
    except Exception:  # noqa: BLE001
        logger.exception("Error notifying user %d about invalid credentials", user.id)
        return
    store.set_credentials_valid(user.id, False)


async def run_pass(
    store: Database,
    config: AppConfig,
    notifier: Notifier,
    stop_event: Optional[asyncio.Event] = None,
    fetcher_factory: FetcherFactory = DocumentFetcher,
) -> Dict[int, int]:
    """Collect for every registered user concurrently; returns delivered counts per user."""
    users = store.list_users()
    logger.info("Starting pass for %d users", len(users))

    async def run_user(user: User) -> int:
        if _stopped(stop_event):
            return 0
        try:
            return await collect_for_user(user, config, store, notifier, stop_event, fetcher_factory)
        except SessionError as exc:
            logger.warning("Skipping user %d: %s", user.id, exc)
            await _report_invalid_credentials(user, store, notifier)
        except FetchError as exc:
            logger.warning("Skipping user %d, FurAffinity unreachable: %s", user.id, exc)
        except Exception:  # noqa: BLE001
            logger.exception("Error collecting entries for user %d", user.id)
        return 0

    counts = await asyncio.gather(*(run_user(user) for user in users))
    return {user.id: count for user, count in zip(users, counts)}


async def watch(
    store: Database,
    config: AppConfig,
    notifier: Notifier,
    stop_event: asyncio.Event,
    fetcher_factory: FetcherFactory = DocumentFetcher,
) -> int:
    """Run passes every ``config.update_interval`` seconds until ``stop_event`` is set.

    Returns the number of completed passes.
    """
    loop = asyncio.get_running_loop()
    passes = 0
    while not stop_event.is_set():
        started = loop.time()
        counts = await run_pass(store, config, notifier, stop_event, fetcher_factory)
        passes += 1
        logger.info("Pass %d finished, %d entries delivered", passes, sum(counts.values()))
        remaining = max(0.0, config.update_interval - (loop.time() - started))
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=remaining)
        except asyncio.TimeoutError:
            pass
    logger.info("Stopped after %d passes", passes)
    return passes
