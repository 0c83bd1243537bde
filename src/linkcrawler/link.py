"""
Link: one discovered URL in crawl context.

A Link keeps the URI exactly as written in the source document and a
reference to the Link that discovered it. Everything else (absolute URL,
depth, crawlability) is derived from that pair.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Pattern, Tuple
from urllib.parse import ParseResult, urldefrag, urljoin, urlparse

from linkcrawler.urls import host_of, remove_dot_segments

# URIs that are never fetched (matched against the URI as written)
DEFAULT_STOP_PATTERNS: Tuple[Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (r"^javascript:", r"^mailto:", r"^tel:", r"^skype:", r"^fax:")
)

# Opt-in set of non-page file extensions (see CrawlConfig.skip_extensions)
MEDIA_EXTENSIONS: frozenset[str] = frozenset((
    ".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg",
    ".pdf", ".zip", ".rar", ".7z",
    ".mp4", ".mp3", ".wav", ".webm",
    ".css", ".js", ".map", ".ico",
    ".woff", ".woff2", ".ttf", ".eot",
))


class LinkState(Enum):
    """Crawl state of a single Link."""
    PENDING = "pending"
    FETCHING = "fetching"
    VISITED = "visited"
    FAILED = "failed"
    PROBED = "probed"
    SKIPPED_NOT_CRAWLABLE = "skipped_not_crawlable"
    SKIPPED_FILTERED = "skipped_filtered"
    SKIPPED_DEPTH = "skipped_depth"


FETCHED_STATES: frozenset[LinkState] = frozenset((
    LinkState.VISITED, LinkState.FAILED, LinkState.PROBED,
))


@dataclass(slots=True)
class LinkRecord:
    """Flat, serializable view of a Link."""
    full_url: str
    path: str
    meta_info: Dict[str, Any]
    parent_url: Optional[str]
    status_code: Optional[int]
    status: Optional[str]
    content_type: Optional[str]
    error_info: Optional[str]
    crawl_depth: int
    is_external: bool
    state: str
    frequency: int
    scanned_at: Optional[str]


@dataclass(slots=True, eq=False)
class Link:
    """A URL discovered during a crawl, plus its crawl-state annotations."""
    original_uri: str
    parent: Optional[Link] = field(default=None, repr=False)
    stop_patterns: Optional[Tuple[Pattern[str], ...]] = field(default=None, repr=False)
    skip_extensions: Optional[frozenset[str]] = field(default=None, repr=False)

    crawl_depth: int = field(init=False, default=0)
    status_code: Optional[int] = field(init=False, default=None)
    status: Optional[str] = field(init=False, default=None)
    content_type: Optional[str] = field(init=False, default=None)
    error_info: Optional[str] = field(init=False, default=None)
    should_visit: bool = field(init=False, default=True)
    state: LinkState = field(init=False, default=LinkState.PENDING)
    frequency: int = field(init=False, default=1)
    scanned_at: Optional[str] = field(init=False, default=None)
    meta_info: Dict[str, Any] = field(init=False, default_factory=dict)
    _parts: Optional[ParseResult] = field(init=False, default=None, repr=False)

    def __post_init__(self) -> None:
        self.original_uri = (self.original_uri or "").strip()

        # Rules and depth are inherited along the discovery chain
        if self.parent is not None:
            self.crawl_depth = self.parent.crawl_depth + 1
            if self.stop_patterns is None:
                self.stop_patterns = self.parent.stop_patterns
            if self.skip_extensions is None:
                self.skip_extensions = self.parent.skip_extensions
        if self.stop_patterns is None:
            self.stop_patterns = DEFAULT_STOP_PATTERNS
        if self.skip_extensions is None:
            self.skip_extensions = frozenset()

        try:
            self._parts = urlparse(self.original_uri)
        except ValueError:
            # e.g. an unbalanced IPv6 bracket; such a URI stays opaque
            self._parts = None

    def __str__(self) -> str:
        return self.original_uri

    # -- URL resolution ---------------------------------------------------

    @property
    def host(self) -> str:
        """Host of the URI as written (empty for relative references)."""
        if self._parts is None:
            return ""
        return (self._parts.hostname or "").lower()

    @property
    def fragment(self) -> str:
        return self._parts.fragment if self._parts is not None else ""

    def absolute_url(self, include_fragment: bool = True) -> str:
        """
        Resolve the URI against the parent chain (RFC 3986).

        Non-crawlable URIs without a fragment (mailto:, javascript:, ...)
        are returned verbatim.
        """
        fragment = self.fragment
        if self._parts is None or (not self.is_crawlable() and not fragment):
            return self.original_uri

        if self.parent is not None:
            resolved = urljoin(self.parent.absolute_url(include_fragment=False), self.original_uri)
        else:
            resolved = self.original_uri

        base, _ = urldefrag(resolved)
        if include_fragment and fragment:
            return f"{base}#{fragment}"
        return base

    @property
    def parent_url(self) -> Optional[str]:
        return self.parent.absolute_url(include_fragment=False) if self.parent is not None else None

    def computed_path(self) -> str:
        """Dot-free path for internal links, the URI as written otherwise."""
        if not self.is_crawlable() or self.is_external():
            return self.original_uri
        return remove_dot_segments(urlparse(self.absolute_url(include_fragment=False)).path)

    # -- Classification ---------------------------------------------------

    def is_crawlable(self) -> bool:
        if self._parts is None:
            return False

        own_path = self._parts.path
        if not own_path and self.parent is not None and not self.parent.own_path():
            return False

        if any(pattern.search(self.original_uri) for pattern in self.stop_patterns):
            return False

        path_lower = own_path.lower()
        if any(path_lower.endswith(ext) for ext in self.skip_extensions):
            return False

        return True

    def own_path(self) -> str:
        return self._parts.path if self._parts is not None else ""

    def is_external(self) -> bool:
        """True when the link names a host other than its parent's."""
        if self.parent is None:
            return False
        own_host = self.host
        return own_host != "" and own_host != host_of(self.parent.absolute_url(include_fragment=False))

    def check_crawlable_status_code(self) -> bool:
        """False for 4xx/5xx responses; unfetched links pass."""
        if self.status_code is None:
            return True
        return not 400 <= self.status_code <= 599

    # -- Crawl state ------------------------------------------------------

    @property
    def visited(self) -> bool:
        """True once a fetch or header probe has completed."""
        return self.state in FETCHED_STATES

    def should_not_visit(self) -> bool:
        return self.should_visit is False

    def set_meta_info(self, key: str, value: Any) -> Link:
        self.meta_info[key] = value
        return self

    def get_meta_info(self, key: str, default: Any = None) -> Any:
        return self.meta_info.get(key, default)

    def add_meta_info(self, key: str, value: Any) -> Link:
        """Append to the list stored under key, creating it if needed."""
        self.meta_info.setdefault(key, []).append(value)
        return self

    def meta_list(self, key: str) -> List[Any]:
        value = self.meta_info.get(key)
        if value is None:
            return []
        return value if isinstance(value, list) else [value]

    def to_record(self) -> LinkRecord:
        return LinkRecord(
            full_url=self.absolute_url(include_fragment=False),
            path=self.computed_path(),
            meta_info=dict(self.meta_info),
            parent_url=self.parent_url,
            status_code=self.status_code,
            status=self.status,
            content_type=self.content_type,
            error_info=self.error_info,
            crawl_depth=self.crawl_depth,
            is_external=self.is_external(),
            state=self.state.value,
            frequency=self.frequency,
            scanned_at=self.scanned_at,
        )
