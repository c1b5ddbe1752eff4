"""
Command line interface for faflow.

This module exposes subcommands to run collection passes and to manage
the registered users they run for:

* ``run`` – one collection pass over every user.
* ``watch`` – periodic passes until interrupted (SIGINT/SIGTERM).
* ``check-login`` – verify a user's FurAffinity cookies.
* ``user add|list|cookie|enable|disable`` – maintain user records.

Configuration is read once per invocation with `load_config` and then
passed explicitly to the commands.  New entries are delivered through
the `LogNotifier`, which prints them to the log and records them as
known.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
from typing import List, Optional

from .collect.collector import FurAffinityCollector
from .collect.fetcher import DocumentFetcher, FetchError
from .collect.runner import run_pass, watch
from .collect.session import CollectorSession
from .config import AppConfig, load_config
from .entries.types import EntryType, valid_entry_types
from .notify import LogNotifier
from .storage.database import Database, User

logger = logging.getLogger("faflow.cli")

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
    )


def _open_store(config: AppConfig) -> Database:
    return Database(config.database_path)


def _require_user(store: Database, user_id: int) -> Optional[User]:
    user = store.get_user(user_id)
    if user is None:
        logger.error("No user with id %d", user_id)
    return user


def _entry_type(raw: str) -> EntryType:
    try:
        return EntryType.from_name(raw)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from None


def cmd_run(args: argparse.Namespace) -> int:
    """Run a single collection pass for every registered user."""
    config: AppConfig = args.app_config
    with _open_store(config) as store:
        notifier = LogNotifier(store, config.max_content_length)
        counts = asyncio.run(run_pass(store, config, notifier))
    logger.info("Delivered %d entries to %d users", sum(counts.values()), len(counts))
    return 0


async def _watch_until_signalled(store: Database, config: AppConfig) -> int:
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Signal handlers are not available on every platform.
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop_event.set)
    notifier = LogNotifier(store, config.max_content_length)
    return await watch(store, config, notifier, stop_event)


def cmd_watch(args: argparse.Namespace) -> int:
    """Run collection passes every ``update_interval`` seconds until interrupted."""
    config: AppConfig = args.app_config
    logger.info("Watching FurAffinity every %d seconds", config.update_interval)
    with _open_store(config) as store:
        asyncio.run(_watch_until_signalled(store, config))
    return 0


async def _check_login(user: User, config: AppConfig) -> bool:
    session = CollectorSession.for_user(user, config)
    async with DocumentFetcher(
        session.cookies(), user_agent=config.user_agent, timeout=config.request_timeout
    ) as fetcher:
        return await FurAffinityCollector(session, fetcher, None).is_logged_in()


def cmd_check_login(args: argparse.Namespace) -> int:
    config: AppConfig = args.app_config
    with _open_store(config) as store:
        user = _require_user(store, args.user)
        if user is None:
            return 2
        try:
            logged_in = asyncio.run(_check_login(user, config))
        except FetchError as exc:
            logger.error("Login check failed: %s", exc)
            return 2
        if logged_in:
            store.set_credentials_valid(user.id, True)
    print(f"User {user.id}: {'logged in' if logged_in else 'NOT logged in'}")
    return 0 if logged_in else 1


def cmd_user_add(args: argparse.Namespace) -> int:
    config: AppConfig = args.app_config
    with _open_store(config) as store:
        user = store.add_user(args.chat_id, unread_notes_only=not args.all_notes, timezone_name=args.timezone)
        for entry_type in args.types or []:
            store.enable_entry_type(user.id, entry_type)
    print(f"Added user {user.id}")
    return 0


def cmd_user_list(args: argparse.Namespace) -> int:
    config: AppConfig = args.app_config
    with _open_store(config) as store:
        users = store.list_users()
    if not users:
        print("No users registered")
    for user in users:
        types = ", ".join(str(t) for t in user.enabled_entry_types()) or "-"
        credentials = "invalid" if user.invalid_credentials_notified else "ok"
        print(
            f"{user.id:3d}. registered {user.created_at:%Y-%m-%d %H:%M} UTC"
            f" | cookies: {', '.join(sorted(user.cookies)) or '-'}"
            f" | types: {types} | credentials: {credentials}"
        )
    return 0


def cmd_user_cookie(args: argparse.Namespace) -> int:
    config: AppConfig = args.app_config
    with _open_store(config) as store:
        if _require_user(store, args.user) is None:
            return 2
        store.set_cookie(args.user, args.name, args.value)
    logger.info("Cookie %s set for user %d", args.name, args.user)
    return 0


def cmd_user_enable(args: argparse.Namespace) -> int:
    config: AppConfig = args.app_config
    enabled = args.command_name == "enable"
    types = args.types or valid_entry_types()
    with _open_store(config) as store:
        if _require_user(store, args.user) is None:
            return 2
        for entry_type in types:
            store.enable_entry_type(args.user, entry_type, enabled=enabled)
    logger.info(
        "%s %s for user %d",
        "Enabled" if enabled else "Disabled",
        ", ".join(str(t) for t in types),
        args.user,
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="faflow", description="FurAffinity notifier")
    parser.add_argument("--config", help="YAML config file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # Run
    run_cmd = subparsers.add_parser("run", help="Run one collection pass")
    run_cmd.set_defaults(func=cmd_run)

    # Watch
    watch_cmd = subparsers.add_parser("watch", help="Run collection passes periodically")
    watch_cmd.set_defaults(func=cmd_watch)

    # Login check
    login_cmd = subparsers.add_parser("check-login", help="Check a user's FurAffinity cookies")
    login_cmd.add_argument("--user", type=int, required=True, help="User id")
    login_cmd.set_defaults(func=cmd_check_login)

    # Users
    user_parser = subparsers.add_parser("user", help="User management commands")
    user_sub = user_parser.add_subparsers(dest="subcommand", required=True)

    add_cmd = user_sub.add_parser("add", help="Register a new user")
    add_cmd.add_argument("--chat-id", type=int, dest="chat_id", help="Chat id of the user")
    add_cmd.add_argument("--timezone", default="UTC", help="Timezone used for display")
    add_cmd.add_argument(
        "--all-notes",
        dest="all_notes",
        action="store_true",
        help="Read the whole notes inbox instead of only unread notes",
    )
    add_cmd.add_argument(
        "--type",
        dest="types",
        action="append",
        type=_entry_type,
        help="Entry type to enable (repeatable): note, submission, submission-comment, journal, journal-comment",
    )
    add_cmd.set_defaults(func=cmd_user_add)

    list_cmd = user_sub.add_parser("list", help="List registered users")
    list_cmd.set_defaults(func=cmd_user_list)

    cookie_cmd = user_sub.add_parser("cookie", help="Set a FurAffinity session cookie")
    cookie_cmd.add_argument("--user", type=int, required=True, help="User id")
    cookie_cmd.add_argument("name", help="Cookie name (e.g. a, b)")
    cookie_cmd.add_argument("value", help="Cookie value")
    cookie_cmd.set_defaults(func=cmd_user_cookie)

    for name in ("enable", "disable"):
        toggle_cmd = user_sub.add_parser(name, help=f"{name.capitalize()} entry types (all when none given)")
        toggle_cmd.add_argument("--user", type=int, required=True, help="User id")
        toggle_cmd.add_argument("types", nargs="*", type=_entry_type, help="Entry types")
        toggle_cmd.set_defaults(func=cmd_user_enable, command_name=name)

    return parser


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    # Console logging until the configured level and log file are known.
    configure_logging("DEBUG" if args.verbose else "INFO")
    config = load_config(args.config)
    configure_logging("DEBUG" if args.verbose else config.log_level, config.log_file)
    args.app_config = config
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
