"""
Shared fixtures for the faflow test suite.

No test talks to FurAffinity.  `FakeFetcher` stands in for
`DocumentFetcher`: it serves canned HTML by URL, records every request
and posted form, and can be told to fail for selected URLs.  The HTML
builders below produce minimal pages with the markup the extractors
rely on.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

import pytest

from faflow.collect.fetcher import FetchError, FetchResult
from faflow.entries.types import EntryType, valid_entry_types
from faflow.extract.common import furaffinity_url, parse_document
from faflow.storage.database import Database, User

REGISTERED = datetime(2024, 1, 1, tzinfo=timezone.utc)
# 2024-06-01T00:00:00Z and 2020-09-13T12:26:40Z
EPOCH_NEW = 1717200000
EPOCH_OLD = 1600000000

Page = Union[str, Tuple[int, str]]


class FakeFetcher:
    """In-memory replacement for DocumentFetcher."""

    def __init__(self, pages: Optional[Mapping[str, Page]] = None, failing: Iterable[str] = ()) -> None:
        self.pages: Dict[str, Page] = {furaffinity_url(k): v for k, v in (pages or {}).items()}
        self.failing = {furaffinity_url(url) for url in failing}
        self.requests: List[str] = []
        self.request_cookies: List[Optional[Mapping[str, str]]] = []
        self.posts: List[Tuple[str, List[Tuple[str, str]]]] = []
        self.closed_at_post: List[bool] = []
        self.post_status = 200
        self.init_cookies: Optional[Mapping[str, str]] = None
        self.closed = False

    def __call__(self, cookies=None, **kwargs) -> "FakeFetcher":
        self.init_cookies = cookies
        return self

    async def __aenter__(self) -> "FakeFetcher":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.closed = True

    async def get(self, url: str, cookies=None) -> FetchResult:
        self.requests.append(url)
        self.request_cookies.append(cookies)
        if url in self.failing:
            raise FetchError(f"simulated failure for {url}", url)
        page = self.pages.get(url)
        if page is None:
            return FetchResult(url=url, status=404, document=parse_document("<html></html>"))
        status, html = page if isinstance(page, tuple) else (200, page)
        return FetchResult(url=url, status=status, document=parse_document(html))

    async def fetch(self, url: str, cookies=None):
        result = await self.get(url, cookies)
        if not result.ok:
            raise FetchError(f"unexpected status {result.status}", url, result.status)
        return result.document

    async def post_form(self, url: str, data, cookies=None) -> int:
        self.posts.append((url, list(data.items()) if isinstance(data, dict) else list(data)))
        self.closed_at_post.append(self.closed)
        return self.post_status


class FakeStore:
    """Known-entry store backed by a set."""

    def __init__(self, known: Iterable[Tuple[EntryType, int, int]] = ()) -> None:
        self.known = set(known)
        self.lookups = 0

    def exists(self, entry_type: EntryType, entry_id: int, user_id: int) -> bool:
        self.lookups += 1
        return (entry_type, entry_id, user_id) in self.known

    def create_known_entry(self, entry_type, entry_id, user_id, notified_at=None, sent_date=None) -> None:
        self.known.add((entry_type, entry_id, user_id))


def make_user(user_id: int = 1, **kwargs) -> User:
    values = dict(
        id=user_id,
        created_at=REGISTERED,
        cookies={"a": "cookie-a", "b": "cookie-b"},
        entry_types={entry_type: REGISTERED for entry_type in valid_entry_types()},
    )
    values.update(kwargs)
    return User(**values)


# HTML builders


def note_node(
    note_id: Optional[int],
    title: str = "Hello",
    sender: str = "FooBar",
    epoch: Optional[int] = EPOCH_NEW,
    unread: bool = False,
    date_text: Optional[str] = None,
) -> str:
    unread_img = '<img class="unread" src="/unread.png">' if unread else ""
    link = f'<a class="notelink" href="/msg/pms/1/{note_id}/">{title}</a>' if note_id is not None else title
    if epoch is not None:
        date = f'<div class="note-list-senddate"><span class="popup_date" data-time="{epoch}">x</span></div>'
    elif date_text is not None:
        date = f'<div class="note-list-senddate">{date_text}</div>'
    else:
        date = ""
    return (
        '<div class="note-list-container">'
        f'<div class="note-list-subject">{unread_img}{link}</div>'
        f'<div class="note-list-sender"><a href="/user/{sender.lower()}/">'
        f'<span class="js-displayName-block">{sender}</span>'
        f'<span class="js-userName-block">~{sender.lower()}</span></a></div>'
        f"{date}</div>"
    )


def notes_page(*nodes: str) -> str:
    return f'<html><body><div id="notes-list">{"".join(nodes)}</div></body></html>'


def note_content_page(text: str = "Hi there", quoted: str = "older message") -> str:
    return (
        '<html><body><div id="message"><div class="section-body">'
        '<div class="noteWarningMessage">Never share your password</div>'
        f"{text}<br/>—————————<br/>{quoted}"
        '<div class="section-options">Reply</div>'
        "</div></div></body></html>"
    )


def comment_node(comment_id: int, author: str = "Commenter", target_path: str = "/view/555/",
                 title: str = "My Art", epoch: Optional[int] = EPOCH_NEW, date_text: str = "") -> str:
    date_attr = f' data-time="{epoch}"' if epoch is not None else ""
    return (
        f'<li><input type="checkbox"/><a href="/user/{author.lower()}/">{author}</a> replied to '
        f'<a href="{target_path}#cid:{comment_id}">{title}</a> '
        f'<span class="popup_date"{date_attr}>{date_text}</span></li>'
    )


def journal_node(journal_id: int, author: str = "Writer", title: str = "Big news",
                 epoch: Optional[int] = EPOCH_NEW) -> str:
    return (
        f'<li><input type="checkbox"/><a href="/journal/{journal_id}/">{title}</a>, posted by '
        f'<a href="/user/{author.lower()}/">{author}</a> '
        f'<span class="popup_date" data-time="{epoch}">x</span></li>'
    )


def others_page(submission_comments: Iterable[str] = (), journal_comments: Iterable[str] = (),
                journals: Iterable[str] = ()) -> str:
    return (
        "<html><body>"
        f'<section id="messages-comments-submission"><ul>{"".join(submission_comments)}</ul></section>'
        f'<section id="messages-comments-journal"><ul>{"".join(journal_comments)}</ul></section>'
        f'<section id="messages-journals"><ul>{"".join(journals)}</ul></section>'
        "</body></html>"
    )


def comment_page(comment_id: int, text: str) -> str:
    return (
        '<html><body><div class="comment_container">'
        f'<a id="cid:{comment_id}"></a>'
        f'<div class="comment-content"><div class="comment_text">{text}</div></div>'
        "</div></body></html>"
    )


def journal_page(text: str) -> str:
    return f'<html><body><div id="site-content"><div class="journal-content">{text}</div></div></body></html>'


def submission_figure(submission_id: int, title: str = "Fox", author: str = "Artist",
                      tags: str = "fox", classes: str = "r-general t-image") -> str:
    return (
        f'<figure id="sid-{submission_id}" class="{classes}">'
        f'<b><u><a href="/view/{submission_id}/">'
        f'<img src="//t.furaffinity.net/{submission_id}@200-{EPOCH_NEW}.jpg" data-tags="{tags}"/></a></u></b>'
        f'<figcaption><label><p><a href="/view/{submission_id}/" title="{title}">{title}</a></p>'
        f'<p><i>by</i> <a href="/user/{author.lower()}/" title="{author}">{author}</a></p></label></figcaption>'
        "</figure>"
    )


def submissions_page(sections: Iterable[Tuple[object, Iterable[str]]], blocked_tags: str = "",
                     submission_data: str = "{}") -> str:
    rendered = "".join(
        f'<section class="notifications-by-date" data-date="{date}">{"".join(figures)}</section>'
        for date, figures in sections
    )
    return (
        f'<html><body data-tag-blocklist="{blocked_tags}">'
        f'<script id="js-submissionData" type="application/json">{submission_data}</script>'
        f'<div id="messagecenter-submissions">{rendered}</div>'
        "</body></html>"
    )


def submission_view_page(epoch: Optional[int] = EPOCH_NEW + 3600, full_view: Optional[str] = None,
                         description: str = "A <b>fine</b> fox") -> str:
    image = f'<div class="submission-image"><img data-fullview-src="{full_view}"/></div>' if full_view else ""
    date = f'<span class="popup_date" data-time="{epoch}">x</span>' if epoch is not None else ""
    return (
        '<html><body><div class="submission-content">'
        f"{image}"
        f'<div class="submission-id-container">{date}</div>'
        '<div class="submission-description">'
        '<div class="submission-header">Header</div>'
        f"{description}"
        '<div class="submission-footer">Footer</div>'
        "</div></div></body></html>"
    )


@pytest.fixture
def user() -> User:
    return make_user()


@pytest.fixture
def db(tmp_path) -> Database:
    database = Database(tmp_path / "data" / "test.db")
    yield database
    database.close()
