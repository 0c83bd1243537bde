"""
Command-line interface for the crawler.
"""
from __future__ import annotations

import argparse
import json
import logging
import re
import sys
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional
from urllib.parse import urlparse

from linkcrawler.config import CrawlConfig, FetchStrategy
from linkcrawler.core import Crawler, CrawlStats
from linkcrawler.filters import PathPrefixFilter, PredicateFilter, UrlPatternFilter
from linkcrawler.link import MEDIA_EXTENSIONS

REPORTS = ("links", "broken", "external", "depth", "source")


def print_summary(stats: CrawlStats, links_known: int) -> None:
    """Write a short crawl report to stderr."""
    rows = [
        ("Pages fetched", stats.pages_crawled),
        ("Links probed", stats.pages_probed),
        ("Links skipped", stats.pages_skipped),
        ("Links discovered", links_known),
        ("Pages missing <title>", stats.pages_without_title),
        ("Pages missing <h1>", stats.pages_without_h1),
    ]
    lines = ["CRAWL SUMMARY", "-" * 40]
    lines += [f"{label:<24}{value}" for label, value in rows]

    if stats.error_counts:
        lines.append("Errors:")
        for kind, count in sorted(stats.error_counts.items()):
            name = "no response" if kind == "connection_error" else f"HTTP {kind}"
            lines.append(f"  {name}: {count}")
    else:
        lines.append("Errors: none")
    sys.stderr.write("\n".join(lines) + "\n\n")


def generate_output_path(start_url: str, directory: str = "crawls") -> Path:
    """Default report location: <directory>/<host>_<YYYYmmdd_HHMMSS>.json"""
    host = (urlparse(start_url).hostname or "unknown").replace(".", "_")
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    target = Path(directory)
    target.mkdir(parents=True, exist_ok=True)
    return target / f"{host}_{stamp}.json"


def build_report(crawler: Crawler, report: str, include_all: bool) -> Any:
    """Turn crawl results into a JSON-serializable payload."""
    collection = crawler.links_collection()
    if report == "broken":
        return collection.get_broken_links(summary=True)
    if report == "external":
        return [asdict(link.to_record()) for link in collection.get_external_links().values()]
    if report == "depth":
        return collection.group_links_by_depth()
    if report == "source":
        return collection.group_links_by_source()
    if include_all:
        return crawler.get_links_array()
    return crawler.get_links_array(visited_only=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Breadth-first crawl of a site, reporting every link found as JSON.",
        prog="linkcrawler",
    )
    parser.add_argument("start_url", help="URL to start crawling from")
    parser.add_argument("--max-depth", type=int, default=3, help="Maximum crawl depth (default: 3)")
    parser.add_argument("--max-pages", type=int, help="Maximum pages to fetch (default: unlimited)")
    parser.add_argument("--timeout", type=float, default=15.0, help="Per-request timeout in seconds (default: 15)")
    parser.add_argument("--user-agent", default="LinkCrawler/1.0", help="User-Agent header")
    parser.add_argument("--insecure", action="store_true", help="Do not verify TLS certificates")
    parser.add_argument("--workers", type=int, default=1, help="Parallel fetches per depth level (default: 1)")
    parser.add_argument("--browser", action="store_true", help="Render pages in a headless browser (Playwright)")
    parser.add_argument("--no-probe", action="store_true", help="Do not check links found at the maximum depth")
    parser.add_argument("--skip-media", action="store_true", help="Do not fetch images, documents and other media")
    parser.add_argument("--include", help="Only visit URLs matching this regex (and --path-prefix, if given)")
    parser.add_argument("--path-prefix", help="Only visit URLs whose path starts with this prefix")
    parser.add_argument("--report", choices=REPORTS, default="links", help="What to output (default: links)")
    parser.add_argument("--all", action="store_true", help="Include links that were never fetched")
    parser.add_argument("--out", help="Write JSON here; '-' means stdout (default: crawls/<host>_<time>.json)")
    parser.add_argument("--pretty", action="store_true", help="Indent the JSON output")
    parser.add_argument("--verbose", action="store_true", help="Log progress and print a summary to stderr")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Console entry point; returns the process exit code."""
    args = build_parser().parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.INFO,
            stream=sys.stderr,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    try:
        config = CrawlConfig(
            timeout_s=args.timeout,
            user_agent=args.user_agent,
            verify_tls=not args.insecure,
            max_pages=args.max_pages,
            workers=args.workers,
            probe_at_max_depth=not args.no_probe,
            skip_extensions=MEDIA_EXTENSIONS if args.skip_media else frozenset(),
            fetch_strategy=FetchStrategy.HEADLESS_BROWSER if args.browser else FetchStrategy.HTTP_CLIENT,
        )
        crawler = Crawler(args.start_url, max_depth=args.max_depth, config=config)
        filters = []
        if args.include:
            filters.append(UrlPatternFilter(args.include))
        if args.path_prefix:
            filters.append(PathPrefixFilter(args.path_prefix))
        if len(filters) == 1:
            crawler.filter_links(filters[0])
        elif filters:
            crawler.filter_links(PredicateFilter(lambda link: all(f.accepts(link) for f in filters)))
    except (ValueError, re.error) as exc:
        sys.stderr.write(f"error: {exc}\n")
        return 2

    try:
        crawler.traverse()
    except KeyboardInterrupt:
        crawler.cancel()
        crawler.close()
        sys.stderr.write("\nInterrupted, writing partial results.\n")

    if args.verbose:
        print_summary(crawler.stats, len(crawler.registry))

    payload = build_report(crawler, args.report, args.all)
    json_text = json.dumps(payload, ensure_ascii=False, indent=2 if args.pretty else None)

    if args.out == "-":
        print(json_text)
    else:
        output_path = Path(args.out) if args.out else generate_output_path(args.start_url)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json_text, encoding="utf-8")
        if args.verbose:
            sys.stderr.write(f"Results written to: {output_path}\n")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
