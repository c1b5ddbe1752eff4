"""
Document fetcher.

A thin async wrapper around an `aiohttp.ClientSession` that sends the
user's FurAffinity cookies with a fixed browser user agent and request
timeout, and hands back parsed BeautifulSoup documents.  One fetcher is
opened per user per pass and shared by every request of that pass.

Network failures, timeouts and (for `fetch`) non-2xx responses raise
`FetchError`.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

import aiohttp
from bs4 import BeautifulSoup

from ..entries.models import FA_BASE_URL
from ..extract.common import parse_document

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:143.0) Gecko/20100101 Firefox/143.0"
REQUEST_TIMEOUT = 30

FormData = Union[Mapping[str, str], Iterable[Tuple[str, str]]]


class FetchError(Exception):
    """A page could not be retrieved."""

    def __init__(self, message: str, url: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.url = url
        self.status = status


@dataclass
class FetchResult:
    url: str
    status: int
    document: BeautifulSoup

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


def cookie_header(cookies: Mapping[str, str]) -> str:
    return "; ".join(f"{name}={value}" for name, value in cookies.items())


class DocumentFetcher:
    """Fetch FurAffinity pages with a fixed cookie set.

    Use as an async context manager::

        async with DocumentFetcher({"a": "...", "b": "..."}) as fetcher:
            soup = await fetcher.fetch("https://www.furaffinity.net/msg/pms/1/")
    """

    def __init__(
        self,
        cookies: Optional[Mapping[str, str]] = None,
        *,
        user_agent: str = USER_AGENT,
        timeout: float = REQUEST_TIMEOUT,
        base_url: str = FA_BASE_URL,
    ) -> None:
        self.cookies: Dict[str, str] = dict(cookies or {})
        self.user_agent = user_agent
        self.timeout = timeout
        self.base_url = base_url
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "DocumentFetcher":
        self._session = aiohttp.ClientSession(
            headers={"User-Agent": self.user_agent},
            timeout=aiohttp.ClientTimeout(total=self.timeout),
            # Cookies go out in an explicit header and are never updated from responses.
            cookie_jar=aiohttp.DummyCookieJar(),
        )
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    def _headers(self, cookies: Optional[Mapping[str, str]]) -> Dict[str, str]:
        merged = dict(self.cookies)
        if cookies:
            merged.update(cookies)
        return {"Cookie": cookie_header(merged)} if merged else {}

    def _require_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError("DocumentFetcher used outside of 'async with'")
        return self._session

    async def get(self, url: str, cookies: Optional[Mapping[str, str]] = None) -> FetchResult:
        session = self._require_session()
        try:
            async with session.get(url, headers=self._headers(cookies)) as response:
                html = await response.text()
                status = response.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise FetchError(f"error fetching {url}: {exc!r}", url) from exc
        logger.debug("GET %s -> %d", url, status)
        return FetchResult(url=url, status=status, document=parse_document(html))

    async def fetch(self, url: str, cookies: Optional[Mapping[str, str]] = None) -> BeautifulSoup:
        result = await self.get(url, cookies)
        if not result.ok:
            raise FetchError(f"unexpected status {result.status} for {url}", url, result.status)
        return result.document

    async def post_form(
        self,
        url: str,
        data: FormData,
        cookies: Optional[Mapping[str, str]] = None,
    ) -> int:
        session = self._require_session()
        fields: List[Tuple[str, str]] = list(data.items()) if isinstance(data, Mapping) else list(data)
        try:
            async with session.post(url, data=aiohttp.FormData(fields), headers=self._headers(cookies)) as response:
                await response.read()
                status = response.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise FetchError(f"error posting to {url}: {exc!r}", url) from exc
        logger.debug("POST %s -> %d", url, status)
        return status
