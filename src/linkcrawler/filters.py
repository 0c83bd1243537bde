"""
Link filters: decide whether a Link may be visited.

A filter rejecting a Link prunes it and everything only reachable through
it before anything is fetched.
"""
from __future__ import annotations

import re
from typing import Callable, Pattern, Protocol, Union, runtime_checkable
from urllib.parse import urlparse

from linkcrawler.link import Link


@runtime_checkable
class LinkFilter(Protocol):
    def accepts(self, link: Link) -> bool:
        ...


class PredicateFilter:
    """Adapt a plain callable taking a Link."""

    def __init__(self, predicate: Callable[[Link], bool]) -> None:
        self.predicate = predicate

    def accepts(self, link: Link) -> bool:
        return bool(self.predicate(link))


class UrlPatternFilter:
    """Accept links whose absolute URL matches a regular expression."""

    def __init__(self, pattern: Union[str, Pattern[str]], flags: int = re.IGNORECASE) -> None:
        self.pattern = re.compile(pattern, flags) if isinstance(pattern, str) else pattern

    def accepts(self, link: Link) -> bool:
        return self.pattern.search(link.absolute_url(include_fragment=False)) is not None


class PathPrefixFilter:
    """Check if the URL path starts with the given prefix."""

    def __init__(self, path_prefix: str) -> None:
        self.path_prefix = path_prefix

    def accepts(self, link: Link) -> bool:
        return urlparse(link.absolute_url(include_fragment=False)).path.startswith(self.path_prefix)


def as_link_filter(predicate: Union[LinkFilter, Callable[[Link], bool]]) -> LinkFilter:
    if isinstance(predicate, LinkFilter):
        return predicate
    if callable(predicate):
        return PredicateFilter(predicate)
    raise TypeError(f"expected a LinkFilter or a callable, got {type(predicate).__name__}")
