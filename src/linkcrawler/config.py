"""
Crawl configuration passed explicitly at construction time.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Pattern, Tuple

from linkcrawler.link import DEFAULT_STOP_PATTERNS

DEFAULT_USER_AGENT = "LinkCrawler/1.0"


class FetchStrategy(Enum):
    """How pages are retrieved."""
    HTTP_CLIENT = "http"
    HEADLESS_BROWSER = "browser"


@dataclass(slots=True)
class CrawlConfig:
    """Options for the fetch layer and the traversal loop."""
    timeout_s: float = 15.0
    user_agent: str = DEFAULT_USER_AGENT
    verify_tls: bool = True
    follow_redirects: bool = True
    headers: Dict[str, str] = field(default_factory=dict)

    max_pages: Optional[int] = None
    workers: int = 1
    probe_at_max_depth: bool = True

    stop_patterns: Tuple[Pattern[str], ...] = DEFAULT_STOP_PATTERNS
    skip_extensions: frozenset[str] = frozenset()

    fetch_strategy: FetchStrategy = FetchStrategy.HTTP_CLIENT
    browser_headless: bool = True
    browser_wait_until: str = "load"

    def validate(self) -> None:
        """Raise ValueError on settings the crawler cannot run with."""
        if self.timeout_s <= 0:
            raise ValueError(f"timeout_s must be positive, got {self.timeout_s}")
        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")
        if self.max_pages is not None and self.max_pages < 1:
            raise ValueError(f"max_pages must be at least 1, got {self.max_pages}")
        if not isinstance(self.fetch_strategy, FetchStrategy):
            raise ValueError(f"unrecognized fetch strategy {self.fetch_strategy!r}")
