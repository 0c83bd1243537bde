"""
Core crawling logic: depth-bounded breadth-first traversal.
"""
from __future__ import annotations

import logging
import threading
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set, Tuple, Union

from linkcrawler.collection import LinksCollection
from linkcrawler.config import CrawlConfig, FetchStrategy
from linkcrawler.extractor import extract_links_info, extract_meta_info
from linkcrawler.fetch import FetchAdapter, FetchError, FetchResult, InvalidUrlError, create_fetch_adapter
from linkcrawler.filters import LinkFilter, as_link_filter
from linkcrawler.link import Link, LinkState
from linkcrawler.registry import LINKS_TEXT, LinkRegistry, registry_key
from linkcrawler.urls import is_valid_url, utc_now_iso

logger = logging.getLogger(__name__)

SEED_LINK_TEXT = "BASE_URL"


@dataclass(slots=True)
class CrawlStats:
    """Counters for the CLI summary; updated as links are processed."""
    pages_crawled: int = 0
    pages_probed: int = 0
    pages_skipped: int = 0
    pages_without_title: int = 0
    pages_without_h1: int = 0
    error_counts: Dict[str, int] = field(default_factory=lambda: defaultdict(int))

    def record_error(self, status_code: Optional[int]) -> None:
        if status_code is None:
            self.error_counts["connection_error"] += 1
        elif status_code >= 400:
            self.error_counts[str(status_code)] += 1

    def record_page(self, title: Optional[str], h1_present: Optional[bool]) -> None:
        """Count pages lacking a title or an h1."""
        if not title:
            self.pages_without_title += 1
        if not h1_present:
            self.pages_without_h1 += 1


class _Action(Enum):
    FETCH = "fetch"
    PROBE = "probe"


_Outcome = Tuple[Optional[FetchResult], Optional[BaseException]]


class Crawler:
    """
    Crawl every same-site page reachable from a base URL, level by level.

    Each link is either skipped (not crawlable, filtered out), fully
    fetched (metadata + children for internal HTML pages), or, once the
    depth bound is reached, probed for its status only. A failure on one
    link is recorded on that link and never stops the traversal.
    """

    def __init__(
        self,
        base_url: str,
        max_depth: int = 3,
        config: Optional[CrawlConfig] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        if not base_url or not base_url.strip():
            raise ValueError("base_url must not be empty")
        if max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {max_depth}")

        self.config = config or CrawlConfig()
        self.config.validate()
        self.base_url = base_url.strip()
        self.max_depth = max_depth
        self.registry = LinkRegistry()
        self.stats = CrawlStats()

        self._adapter: Optional[FetchAdapter] = None
        self._owns_adapter = False
        self._filter: Optional[LinkFilter] = None
        self._logger = logger
        self._cancel_event = cancel_event or threading.Event()

        # depth -> source url -> links queued from that source
        self._levels: Dict[int, Dict[Optional[str], List[Link]]] = {}
        self._visited: Set[str] = set()
        # keys enqueued during the current traverse() call
        self._queued: Set[str] = set()

    # -- Configuration ----------------------------------------------------

    def set_fetch_adapter(self, adapter: FetchAdapter) -> Crawler:
        self._close_owned_adapter()
        self._adapter = adapter
        self._owns_adapter = False
        return self

    def get_fetch_adapter(self) -> FetchAdapter:
        if self._adapter is None:
            self._adapter = create_fetch_adapter(self.config.fetch_strategy, self.config)
            self._owns_adapter = True
        return self._adapter

    def enable_browser_rendering(self) -> Crawler:
        """Fetch pages through a headless browser instead of plain HTTP."""
        self.config = replace(self.config, fetch_strategy=FetchStrategy.HEADLESS_BROWSER)
        if self._owns_adapter:
            self._close_owned_adapter()
        return self

    def set_logger(self, crawl_logger: Optional[logging.Logger]) -> Crawler:
        self._logger = crawl_logger if crawl_logger is not None else logger
        return self

    def filter_links(self, predicate: Union[LinkFilter, Callable[[Link], bool], None]) -> Crawler:
        """Only visit links the predicate accepts; None removes the filter."""
        self._filter = as_link_filter(predicate) if predicate is not None else None
        return self

    def cancel(self) -> None:
        """Stop dequeuing; traverse() returns with partial results."""
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    # -- Traversal --------------------------------------------------------

    def traverse(self, start_link: Union[Link, str, None] = None) -> Crawler:
        """Crawl from start_link (default: the base URL) until the frontier is empty."""
        if start_link is None or isinstance(start_link, str):
            seed = Link(
                start_link or self.base_url,
                stop_patterns=self.config.stop_patterns,
                skip_extensions=self.config.skip_extensions,
            )
        else:
            seed = start_link

        self._levels.clear()
        self._visited.clear()
        self._queued.clear()

        seed = self.registry.register(seed)
        if seed.parent is None and SEED_LINK_TEXT not in seed.meta_list(LINKS_TEXT):
            seed.add_meta_info(LINKS_TEXT, SEED_LINK_TEXT)
        self._enqueue(seed)

        self._logger.info("Starting crawl from %s (max depth %d)", seed.absolute_url(), self.max_depth)
        try:
            self._run()
        finally:
            self._levels.clear()
            self._close_owned_adapter()

        self._logger.info(
            "Crawl finished: %d pages, %d links known%s",
            self.stats.pages_crawled, len(self.registry),
            " (cancelled)" if self.cancelled else "",
        )
        return self

    def _enqueue(self, link: Link) -> None:
        key = registry_key(link)
        if key in self._queued:
            return
        self._queued.add(key)
        level = self._levels.setdefault(link.crawl_depth, {})
        level.setdefault(link.parent_url, []).append(link)

    def _budget_left(self, planned: int = 0) -> bool:
        if self.config.max_pages is None:
            return True
        return self.stats.pages_crawled + planned < self.config.max_pages

    def _should_stop(self, planned: int = 0) -> bool:
        if self.cancelled:
            self._logger.info("Crawl cancelled, returning partial results")
            return True
        if not self._budget_left(planned):
            self._logger.info("Page budget of %d reached", self.config.max_pages)
            return True
        return False

    def _run(self) -> None:
        concurrent = self.config.workers > 1 and getattr(self.get_fetch_adapter(), "thread_safe", False)
        if self.config.workers > 1 and not concurrent:
            self._logger.warning("Fetch adapter is not thread-safe, crawling sequentially")

        while self._levels:
            depth = min(self._levels)
            batch = [link for links in self._levels.pop(depth).values() for link in links]
            self._logger.debug("Processing depth %d (%d links)", depth, len(batch))

            if concurrent:
                finished = self._process_level_concurrently(batch)
            else:
                finished = self._process_level(batch)
            if not finished:
                return

    def _process_level(self, batch: List[Link]) -> bool:
        for link in batch:
            if self._should_stop():
                return False
            action = self._plan_safely(link)
            if action is None:
                continue
            result, error = self._execute(link, action)
            self._apply(link, action, result, error)
        return True

    def _process_level_concurrently(self, batch: List[Link]) -> bool:
        planned: List[Tuple[Link, _Action]] = []
        stopped = False
        for link in batch:
            fetches = sum(1 for _, action in planned if action is _Action.FETCH)
            if self._should_stop(planned=fetches):
                stopped = True
                break
            action = self._plan_safely(link)
            if action is not None:
                planned.append((link, action))

        with ThreadPoolExecutor(max_workers=self.config.workers) as pool:
            futures = {pool.submit(self._execute, link, action): (link, action) for link, action in planned}
            for future in as_completed(futures):
                if future.cancelled():
                    continue
                link, action = futures[future]
                result, error = future.result()
                self._apply(link, action, result, error)
                if self.cancelled:
                    for pending in futures:
                        pending.cancel()
                    stopped = True

        # Links whose fetch never started stay pending
        for future, (link, _) in futures.items():
            if future.cancelled():
                link.state = LinkState.PENDING
                link.should_visit = True
                self._visited.discard(registry_key(link))
        return not stopped

    def _plan_safely(self, link: Link) -> Optional[_Action]:
        try:
            return self._plan(link)
        except Exception as exc:
            link.scanned_at = utc_now_iso()
            self._record_failure(link, exc)
            return None

    def _plan(self, link: Link) -> Optional[_Action]:
        """Classify a dequeued link; returns what to do with it, if anything."""
        key = registry_key(link)
        if key in self._visited:
            self._logger.debug("Already visited %s", key)
            return None

        if not link.is_crawlable():
            link.should_visit = False
            link.state = LinkState.SKIPPED_NOT_CRAWLABLE
            self.stats.pages_skipped += 1
            self._logger.debug("Not crawlable: %s", link.original_uri)
            return None

        if self._filter is not None and not self._filter.accepts(link):
            link.should_visit = False
            link.state = LinkState.SKIPPED_FILTERED
            self.stats.pages_skipped += 1
            self._logger.info("Filtered out: %s", key)
            return None

        self._visited.add(key)

        if link.crawl_depth >= self.max_depth:
            link.should_visit = False
            if not self.config.probe_at_max_depth:
                link.state = LinkState.SKIPPED_DEPTH
                return None
            link.state = LinkState.FETCHING
            return _Action.PROBE

        link.should_visit = True
        link.state = LinkState.FETCHING
        return _Action.FETCH

    def _execute(self, link: Link, action: _Action) -> _Outcome:
        """Run the request for a planned link. Safe to call from worker threads."""
        url = link.absolute_url(include_fragment=False)
        adapter = self.get_fetch_adapter()
        try:
            if not is_valid_url(url):
                raise InvalidUrlError(f"Invalid URL: {url}")
            if action is _Action.PROBE:
                return adapter.probe(url), None
            return adapter.fetch(url), None
        except Exception as exc:
            return None, exc

    def _apply(self, link: Link, action: _Action, result: Optional[FetchResult],
               error: Optional[BaseException]) -> None:
        link.scanned_at = utc_now_iso()
        if error is not None:
            self._record_failure(link, error)
            return
        try:
            self._record_result(link, action, result)
        except Exception as exc:
            self._record_failure(link, exc)

    def _record_result(self, link: Link, action: _Action, result: FetchResult) -> None:
        link.status_code = result.status_code
        link.status = result.status_text
        link.content_type = result.content_type
        link.error_info = None
        url = link.absolute_url(include_fragment=False)

        if not link.check_crawlable_status_code():
            self.stats.record_error(result.status_code)

        if action is _Action.PROBE:
            link.state = LinkState.PROBED
            self.stats.pages_probed += 1
            self._logger.debug("Probed %s: %s", url, result.status_code)
            return

        self.stats.pages_crawled += 1
        if not 200 <= result.status_code <= 299:
            link.state = LinkState.VISITED if link.check_crawlable_status_code() else LinkState.FAILED
            self._logger.info("%s %s", result.status_code, url)
            return

        link.state = LinkState.VISITED
        if not result.is_html or result.document is None:
            self._logger.info("%s %s (%s, not parsed)", result.status_code, url, result.content_type or "no content type")
            return

        extract_meta_info(result.document, link)
        self.stats.record_page(link.get_meta_info("title"), link.get_meta_info("h1_count", 0) > 0)

        new_links = 0
        if link.is_external():
            self._logger.debug("Not expanding external page %s", url)
        else:
            for child in extract_links_info(result.document, link):
                known = self.registry.register(child)
                if known is child:
                    new_links += 1
                # Entries left from an earlier traverse() are queued again
                self._enqueue(known)

        self._logger.info("%s %s (+%d links)", result.status_code, url, new_links)

    def _record_failure(self, link: Link, error: BaseException) -> None:
        """Record a per-link failure; never propagates."""
        url = link.absolute_url(include_fragment=False)
        reported = error.status_code if isinstance(error, FetchError) else None

        if isinstance(error, InvalidUrlError):
            link.status_code = 404
            link.status = "Invalid URL"
        elif isinstance(error, FetchError) or link.status_code is None:
            link.status_code = reported or 500
            link.status = "Fetch Error"
        link.error_info = str(error) or type(error).__name__

        # Transport failures without a response are counted separately
        no_response = isinstance(error, FetchError) and reported is None and not isinstance(error, InvalidUrlError)
        self.stats.record_error(None if no_response else link.status_code)

        if self._rejected_by_filter(link):
            link.should_visit = False
            link.state = LinkState.SKIPPED_FILTERED
            self._logger.info("Suppressed failure for filtered link %s: %s", url, link.error_info)
        elif isinstance(error, InvalidUrlError):
            link.state = LinkState.FAILED
            self._logger.warning("Invalid URL %s", url)
        else:
            link.state = LinkState.FAILED
            self._logger.error("Failed to fetch %s: %s", url, link.error_info)

    def _rejected_by_filter(self, link: Link) -> bool:
        if self._filter is None:
            return False
        try:
            return not self._filter.accepts(link)
        except Exception as exc:
            self._logger.debug("Filter raised on %s: %s", link.original_uri, exc)
            return False

    # -- Results ----------------------------------------------------------

    def get_links(self, include_skipped: bool = False) -> Dict[str, Link]:
        """Registry snapshot; links marked should-not-visit are left out unless asked for."""
        links = self.registry.all()
        if include_skipped:
            return links
        return {key: link for key, link in links.items() if not link.should_not_visit()}

    def get_links_array(self, visited_only: bool = False) -> List[Dict[str, Any]]:
        return [
            asdict(link.to_record())
            for link in self.registry
            if not visited_only or link.visited
        ]

    def links_collection(self) -> LinksCollection:
        return LinksCollection(self.registry.all())

    def close(self) -> None:
        self._close_owned_adapter()

    def _close_owned_adapter(self) -> None:
        if self._adapter is not None and self._owns_adapter:
            self._adapter.close()
            self._adapter = None
            self._owns_adapter = False

    def __enter__(self) -> Crawler:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
