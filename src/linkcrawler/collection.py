"""
Read-only reports over the links found by a crawl.
"""
from __future__ import annotations

from typing import Any, Dict, Iterator, List, Mapping, Optional

from linkcrawler.link import Link


class LinksCollection:
    """Simple statistics over a registry snapshot (key -> Link)."""

    def __init__(self, links: Mapping[str, Link]) -> None:
        self._links: Dict[str, Link] = dict(links)

    def __len__(self) -> int:
        return len(self._links)

    def __iter__(self) -> Iterator[str]:
        return iter(self._links)

    def __getitem__(self, key: str) -> Link:
        return self._links[key]

    def items(self):
        return self._links.items()

    def filter_by_depth(self, depth: int) -> Dict[str, Dict[str, Optional[str]]]:
        """Links first reached at the given depth, with the page they came from."""
        return {
            key: {"source_page": link.parent_url, "link": link.absolute_url(include_fragment=False)}
            for key, link in self._links.items()
            if link.crawl_depth == depth
        }

    def get_broken_links(self, summary: bool = False) -> Dict[str, Any]:
        """
        Fetched links answering 4xx/5xx.

        With summary=True only source page, link and status code are kept.
        """
        broken = {
            key: link for key, link in self._links.items()
            if link.visited and not link.check_crawlable_status_code()
        }
        if not summary:
            return broken
        return {
            key: {
                "source_page": link.parent_url,
                "link": link.absolute_url(include_fragment=False),
                "status_code": link.status_code,
            }
            for key, link in broken.items()
        }

    def group_links_by_depth(self) -> Dict[int, Dict[str, Dict[str, Optional[str]]]]:
        grouped: Dict[int, Dict[str, Dict[str, Optional[str]]]] = {}
        for key, link in self._links.items():
            grouped.setdefault(link.crawl_depth, {})[key] = {
                "link": link.absolute_url(include_fragment=False),
                "source_page": link.parent_url,
            }
        return dict(sorted(grouped.items()))

    def group_links_by_source(self) -> Dict[Optional[str], List[str]]:
        """Source page -> distinct links first discovered on it."""
        grouped: Dict[Optional[str], List[str]] = {}
        seen = set()
        for link in self._links.values():
            url = link.absolute_url(include_fragment=False)
            if url in seen:
                continue
            seen.add(url)
            grouped.setdefault(link.parent_url, []).append(url)
        return grouped

    def get_external_links(self) -> Dict[str, Link]:
        return {key: link for key, link in self._links.items() if link.is_external()}
