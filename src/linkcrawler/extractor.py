"""
Child-link and page-metadata extraction from a fetched document.

Extraction never decides what gets visited; that policy lives in the
crawler.
"""
from __future__ import annotations

from typing import List

from linkcrawler.document import Document
from linkcrawler.link import Link
from linkcrawler.registry import LINKS_TEXT


def extract_links_info(document: Document, owner: Link) -> List[Link]:
    """Build a child Link for every <a> with a non-empty href."""
    children: List[Link] = []
    for anchor in document.select_by_tag("a"):
        href = (anchor.attr("href") or "").strip()
        if not href:
            continue
        child = Link(href, parent=owner)
        child.add_meta_info(LINKS_TEXT, anchor.text())
        children.append(child)
    return children


def extract_meta_info(document: Document, owner: Link) -> None:
    """Record title, meta description/keywords, canonical link and headings."""
    title = document.select_one("head title") or document.select_one("title")
    owner.set_meta_info("title", title.text() if title else "")

    for name, key in (("description", "meta_description"), ("keywords", "meta_keywords")):
        meta = document.select_one(f'meta[name="{name}" i]')
        owner.set_meta_info(key, (meta.attr("content") or "").strip() if meta else "")

    canonical = document.select_one('link[rel~="canonical" i]')
    owner.set_meta_info("canonical_link", (canonical.attr("href") or "").strip() if canonical else "")

    for heading in ("h1", "h2"):
        contents = [element.text() for element in document.select_by_tag(heading)]
        owner.set_meta_info(f"{heading}_count", len(contents))
        owner.set_meta_info(f"{heading}_contents", contents)
