"""
Headless-browser fetch adapter for JavaScript-dependent pages.

Pages are rendered with Playwright's Chromium; the rendered DOM (not the
initial HTML source) becomes the Document. Header probes skip the browser
and go through the plain HTTP adapter.
"""
from __future__ import annotations

import logging
from typing import Optional

from linkcrawler.config import CrawlConfig
from linkcrawler.document import Document
from linkcrawler.fetch import FetchError, FetchResult, HttpFetchAdapter, InvalidUrlError
from linkcrawler.urls import is_valid_url

logger = logging.getLogger(__name__)


class BrowserFetchAdapter:
    """Render pages in Chromium via the Playwright sync API."""

    # Playwright sync objects are bound to the thread that created them
    thread_safe = False

    def __init__(self, config: Optional[CrawlConfig] = None, prober: Optional[HttpFetchAdapter] = None) -> None:
        self.config = config or CrawlConfig()
        self.prober = prober or HttpFetchAdapter(self.config)
        self._playwright = None
        self._browser = None
        self._context = None
        self._page = None

    def _ensure_page(self):
        if self._page is not None:
            return self._page
        try:
            from playwright.sync_api import sync_playwright
        except ImportError as exc:
            raise FetchError(
                "Playwright not installed. Run: pip install playwright && python -m playwright install chromium"
            ) from exc

        logger.info("Starting Chromium (%s)", "headless" if self.config.browser_headless else "headed")
        self._playwright = sync_playwright().start()
        self._browser = self._playwright.chromium.launch(
            headless=self.config.browser_headless,
            args=["--disable-gpu", "--no-sandbox", "--disable-dev-shm-usage"],
        )
        self._context = self._browser.new_context(
            user_agent=self.config.user_agent,
            ignore_https_errors=not self.config.verify_tls,
            extra_http_headers=self.config.headers or None,
        )
        self._page = self._context.new_page()
        return self._page

    def fetch(self, url: str) -> FetchResult:
        if not is_valid_url(url):
            raise InvalidUrlError(f"Invalid URL: {url}")

        page = self._ensure_page()
        try:
            response = page.goto(
                url,
                wait_until=self.config.browser_wait_until,
                timeout=self.config.timeout_s * 1000,  # Playwright uses ms
            )
        except Exception as exc:
            # Playwright raises its own Error/TimeoutError hierarchy
            raise FetchError(str(exc)) from exc

        if response is None:
            raise FetchError(f"No response from browser for: {url}")

        headers = {key.lower(): value for key, value in response.headers.items()}
        result = FetchResult(
            url=page.url or url,
            status_code=response.status,
            status_text=response.status_text or "",
            content_type=headers.get("content-type", ""),
            headers=headers,
        )
        if result.is_html:
            result.document = Document(page.content(), url=result.url)
        return result

    def probe(self, url: str) -> FetchResult:
        return self.prober.probe(url)

    def close(self) -> None:
        """Close Playwright resources; safe to call more than once."""
        for resource in (self._page, self._context, self._browser):
            if resource is not None:
                try:
                    resource.close()
                except Exception as exc:
                    logger.debug("Ignoring error while closing browser resource: %s", exc)
        if self._playwright is not None:
            self._playwright.stop()
        self._page = self._context = self._browser = self._playwright = None
        self.prober.close()
