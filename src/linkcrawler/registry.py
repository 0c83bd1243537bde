"""
Deduplicating store of every Link discovered during one crawl.
"""
from __future__ import annotations

from typing import Dict, Iterator, Optional

from linkcrawler.link import Link
from linkcrawler.urls import normalize_url

LINKS_TEXT = "links_text"
ORIGINAL_URLS = "original_urls"
LINKED_FROM = "linked_from"


def registry_key(link: Link) -> str:
    """Registry key: normalized absolute URL without fragment."""
    return normalize_url(link.absolute_url(include_fragment=False))


def _extend_unique(target: Link, key: str, values) -> None:
    existing = target.meta_info.setdefault(key, [])
    for value in values:
        if value not in existing:
            existing.append(value)


class LinkRegistry:
    """
    Mapping from normalized absolute URL to the authoritative Link.

    The first Link registered under a key wins. Later discoveries of the
    same destination only extend its metadata lists; fetch results
    (status code, content type, depth) are never replaced.
    """

    def __init__(self) -> None:
        self._links: Dict[str, Link] = {}

    def register(self, link: Link) -> Link:
        """Insert or merge a Link. Returns the authoritative entry."""
        key = registry_key(link)
        existing = self._links.get(key)

        if existing is None:
            _extend_unique(link, ORIGINAL_URLS, [link.original_uri])
            link.meta_info.setdefault(LINKS_TEXT, [])
            if link.parent_url is not None:
                _extend_unique(link, LINKED_FROM, [link.parent_url])
            self._links[key] = link
            return link

        if existing is link:
            return existing

        _extend_unique(existing, ORIGINAL_URLS, [link.original_uri])
        _extend_unique(existing, LINKS_TEXT, link.meta_list(LINKS_TEXT))
        if link.parent_url is not None:
            _extend_unique(existing, LINKED_FROM, [link.parent_url])
        if existing.visited:
            existing.frequency += link.frequency
        return existing

    def lookup(self, key: str) -> Optional[Link]:
        link = self._links.get(key)
        if link is None:
            link = self._links.get(normalize_url(key))
        return link

    def all(self) -> Dict[str, Link]:
        """Snapshot of the registry in discovery order."""
        return dict(self._links)

    def clear(self) -> None:
        self._links.clear()

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.lookup(key) is not None

    def __iter__(self) -> Iterator[Link]:
        return iter(list(self._links.values()))

    def __len__(self) -> int:
        return len(self._links)
