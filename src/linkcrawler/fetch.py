"""
Fetch adapters: the transport boundary of the crawler.

An adapter turns an absolute URL into a FetchResult (status, headers,
content type and, for HTML, a queryable Document) or raises FetchError.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Protocol, runtime_checkable
from urllib.parse import unquote, urlparse

import requests

from linkcrawler.config import CrawlConfig, FetchStrategy
from linkcrawler.document import Document

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """A URL could not be retrieved."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InvalidUrlError(FetchError):
    """The URL failed validation before any request was made."""


@dataclass(slots=True)
class FetchResult:
    """Outcome of a successful request."""
    url: str
    status_code: int
    status_text: str = ""
    content_type: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    document: Optional[Document] = None

    @property
    def is_html(self) -> bool:
        return "text/html" in self.content_type.lower()


@runtime_checkable
class FetchAdapter(Protocol):
    def fetch(self, url: str) -> FetchResult:
        """GET the URL and return status, headers and a parsed document."""
        ...

    def probe(self, url: str) -> FetchResult:
        """Headers-only existence check; `document` is always None."""
        ...

    def close(self) -> None:
        ...


def _response_status(exc: requests.RequestException) -> Optional[int]:
    response = getattr(exc, "response", None)
    return response.status_code if response is not None else None


class HttpFetchAdapter:
    """Plain HTTP client following redirects, backed by a requests.Session."""

    thread_safe = True

    def __init__(self, config: Optional[CrawlConfig] = None, session: Optional[requests.Session] = None) -> None:
        self.config = config or CrawlConfig()
        self.session = session or requests.Session()
        self.session.headers["User-Agent"] = self.config.user_agent
        self.session.headers.update(self.config.headers)
        self.session.verify = self.config.verify_tls

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            return self.session.request(
                method,
                url,
                timeout=self.config.timeout_s,
                allow_redirects=self.config.follow_redirects,
                **kwargs,
            )
        except (requests.exceptions.InvalidURL,
                requests.exceptions.MissingSchema,
                requests.exceptions.InvalidSchema) as exc:
            raise InvalidUrlError(str(exc)) from exc
        except requests.RequestException as exc:
            raise FetchError(str(exc), status_code=_response_status(exc)) from exc

    def fetch(self, url: str) -> FetchResult:
        resp = self._request("GET", url)
        content_type = resp.headers.get("content-type") or ""
        result = FetchResult(
            url=resp.url or url,
            status_code=resp.status_code,
            status_text=resp.reason or "",
            content_type=content_type,
            headers=dict(resp.headers),
        )
        if result.is_html:
            result.document = Document(resp.text, url=result.url)
        return result

    def probe(self, url: str) -> FetchResult:
        resp = self._request("HEAD", url)
        if resp.status_code in (405, 501):
            # Some servers refuse HEAD; stream a GET and drop the body
            logger.debug("HEAD refused by %s, retrying with GET", url)
            resp = self._request("GET", url, stream=True)
            resp.close()
        return FetchResult(
            url=resp.url or url,
            status_code=resp.status_code,
            status_text=resp.reason or "",
            content_type=resp.headers.get("content-type") or "",
            headers=dict(resp.headers),
        )

    def close(self) -> None:
        self.session.close()


class LocalFileFetchAdapter:
    """
    Serve pages from a directory as if they lived under `base_url`.

    `http://localhost/docs/page` maps to `<root>/docs/page.html`; a
    trailing slash maps to `index.html`. Missing files answer 404.
    """

    thread_safe = True

    def __init__(self, root: Path | str, base_url: str = "http://localhost") -> None:
        self.root = Path(root).resolve()
        self.base_url = base_url.rstrip("/")

    def _path_for(self, url: str) -> Optional[Path]:
        if not url.startswith(self.base_url):
            return None
        rel = unquote(urlparse(url[len(self.base_url):] or "/").path).lstrip("/")
        if not rel or rel.endswith("/"):
            rel += "index.html"
        elif not Path(rel).suffix:
            rel += ".html"
        path = (self.root / rel).resolve()
        if path != self.root and self.root not in path.parents:
            return None
        return path

    def _lookup(self, url: str) -> tuple[FetchResult, Optional[Path]]:
        path = self._path_for(url)
        if path is None or not path.is_file():
            return FetchResult(url=url, status_code=404, status_text="Not Found", content_type="text/plain"), None
        return FetchResult(url=url, status_code=200, status_text="OK", content_type="text/html; charset=utf-8"), path

    def fetch(self, url: str) -> FetchResult:
        result, path = self._lookup(url)
        if path is not None:
            result.document = Document(path.read_text(encoding="utf-8", errors="replace"), url=url)
        return result

    def probe(self, url: str) -> FetchResult:
        result, _ = self._lookup(url)
        return result

    def close(self) -> None:
        pass


def create_fetch_adapter(strategy: FetchStrategy, config: Optional[CrawlConfig] = None) -> FetchAdapter:
    """Build the adapter for a fetch strategy."""
    config = config or CrawlConfig()
    if strategy is FetchStrategy.HTTP_CLIENT:
        return HttpFetchAdapter(config)
    if strategy is FetchStrategy.HEADLESS_BROWSER:
        from linkcrawler.browser import BrowserFetchAdapter
        return BrowserFetchAdapter(config)
    raise ValueError(f"unrecognized fetch strategy {strategy!r}")
