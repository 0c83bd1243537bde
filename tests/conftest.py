"""Shared fixtures: an in-memory site served by a fake fetch adapter."""
from __future__ import annotations

import threading
from typing import Callable, Dict, Optional, Tuple, Union

import pytest

from linkcrawler import Crawler, CrawlConfig
from linkcrawler.document import Document
from linkcrawler.fetch import FetchResult

REASONS = {200: "OK", 301: "Moved Permanently", 403: "Forbidden", 404: "Not Found", 500: "Internal Server Error"}

Page = Union[str, Tuple[int, str, str]]


class FakeFetchAdapter:
    """
    Serve pages from a dict.

    A page is either an HTML string (200, text/html) or a
    (status, content_type, body) tuple. Unknown URLs answer 404.
    """

    def __init__(
        self,
        pages: Optional[Dict[str, Page]] = None,
        errors: Optional[Dict[str, Exception]] = None,
        thread_safe: bool = True,
        on_fetch: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.pages = pages or {}
        self.errors = errors or {}
        self.thread_safe = thread_safe
        self.on_fetch = on_fetch
        self.fetched: list[str] = []
        self.probed: list[str] = []
        self.closed = False
        self._lock = threading.Lock()

    def _result(self, url: str, with_document: bool) -> FetchResult:
        if url in self.errors:
            raise self.errors[url]
        page = self.pages.get(url)
        if page is None:
            status, content_type, body = 404, "text/html", "<html><body>Not found</body></html>"
        elif isinstance(page, str):
            status, content_type, body = 200, "text/html; charset=utf-8", page
        else:
            status, content_type, body = page
        result = FetchResult(
            url=url,
            status_code=status,
            status_text=REASONS.get(status, ""),
            content_type=content_type,
        )
        if with_document and "text/html" in content_type:
            result.document = Document(body, url=url)
        return result

    def fetch(self, url: str) -> FetchResult:
        with self._lock:
            self.fetched.append(url)
        if self.on_fetch is not None:
            self.on_fetch(url)
        return self._result(url, with_document=True)

    def probe(self, url: str) -> FetchResult:
        with self._lock:
            self.probed.append(url)
        return self._result(url, with_document=False)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_adapter():
    """The FakeFetchAdapter class, for tests that build their own."""
    return FakeFetchAdapter


@pytest.fixture
def crawl():
    """Crawl an in-memory site; returns (crawler, adapter)."""
    def _crawl(
        pages: Dict[str, Page],
        start: str,
        max_depth: int = 3,
        errors: Optional[Dict[str, Exception]] = None,
        config: Optional[CrawlConfig] = None,
        link_filter=None,
        thread_safe: bool = True,
    ):
        adapter = FakeFetchAdapter(pages, errors, thread_safe=thread_safe)
        crawler = Crawler(start, max_depth=max_depth, config=config).set_fetch_adapter(adapter)
        if link_filter is not None:
            crawler.filter_links(link_filter)
        crawler.traverse()
        return crawler, adapter
    return _crawl
