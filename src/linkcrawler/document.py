"""
Queryable HTML document handle returned by fetch adapters.
"""
from __future__ import annotations

from typing import List, Optional

from bs4 import BeautifulSoup, Tag


class Element:
    """Thin read-only wrapper over a parsed HTML element."""

    __slots__ = ("_tag",)

    def __init__(self, tag: Tag) -> None:
        self._tag = tag

    @property
    def name(self) -> str:
        return self._tag.name

    def text(self) -> str:
        """Tag-stripped text content, whitespace collapsed."""
        return self._tag.get_text(separator=" ", strip=True)

    def html(self) -> str:
        """Inner HTML."""
        return self._tag.decode_contents()

    def attr(self, name: str, default: Optional[str] = None) -> Optional[str]:
        value = self._tag.get(name)
        if value is None:
            return default
        # Multi-valued attributes (rel, class) come back as lists
        if isinstance(value, list):
            return " ".join(value)
        return value

    def __repr__(self) -> str:
        return f"Element(<{self._tag.name}>)"


class Document:
    """
    HTML document parsed lazily with BeautifulSoup (lxml backend).

    `select` takes CSS path expressions ("head title",
    'meta[name="description"]', 'link[rel~="canonical"]').
    """

    def __init__(self, html: str, url: Optional[str] = None) -> None:
        self.raw_html = html or ""
        self.url = url
        self._soup: Optional[BeautifulSoup] = None

    @property
    def soup(self) -> BeautifulSoup:
        if self._soup is None:
            self._soup = BeautifulSoup(self.raw_html, "lxml")
        return self._soup

    def select_by_tag(self, tag_name: str) -> List[Element]:
        return [Element(tag) for tag in self.soup.find_all(tag_name)]

    def select(self, expression: str) -> List[Element]:
        return [Element(tag) for tag in self.soup.select(expression)]

    def select_one(self, expression: str) -> Optional[Element]:
        tag = self.soup.select_one(expression)
        return Element(tag) if tag is not None else None

    def __len__(self) -> int:
        return len(self.raw_html)
