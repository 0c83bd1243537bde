"""
Breadth-first web-site crawler that records per-page metadata, link
provenance and broken/external links.
"""
import logging

from linkcrawler.collection import LinksCollection
from linkcrawler.config import CrawlConfig, FetchStrategy
from linkcrawler.core import Crawler, CrawlStats
from linkcrawler.fetch import FetchError, FetchResult, HttpFetchAdapter, InvalidUrlError, LocalFileFetchAdapter
from linkcrawler.filters import LinkFilter, PathPrefixFilter, PredicateFilter, UrlPatternFilter
from linkcrawler.link import MEDIA_EXTENSIONS, Link, LinkState
from linkcrawler.registry import LinkRegistry

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "2.0.0"
__all__ = [
    "Crawler", "CrawlStats", "CrawlConfig", "FetchStrategy",
    "Link", "LinkState", "LinkRegistry", "LinksCollection", "MEDIA_EXTENSIONS",
    "FetchError", "FetchResult", "InvalidUrlError", "HttpFetchAdapter", "LocalFileFetchAdapter",
    "LinkFilter", "PredicateFilter", "UrlPatternFilter", "PathPrefixFilter",
]
