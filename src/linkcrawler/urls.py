"""
URL helpers shared by links, the registry and the fetch adapters.
"""
from __future__ import annotations

from datetime import datetime, timezone
from urllib.parse import urldefrag, urlparse, urlunparse

HTTP_SCHEMES: frozenset[str] = frozenset(("http", "https"))

DEFAULT_PORTS: dict[str, int] = {"http": 80, "https": 443}


def utc_now_iso() -> str:
    """Timestamp for Link.scanned_at (UTC, second precision)."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def normalize_url(url: str) -> str:
    """
    Canonical form of an http(s) URL, used as the registry key.

    Scheme and host are lowercased, the fragment and any default port are
    dropped and an empty path becomes "/". Path case and the query string
    are kept. Anything that is not an absolute http(s) URL (mailto:,
    javascript:, unresolvable relative references) only loses its fragment.
    """
    try:
        bare, _ = urldefrag(url)
        parts = urlparse(bare)
        port = parts.port
    except ValueError:
        # e.g. an unbalanced IPv6 bracket or a non-numeric port
        return url.partition("#")[0]

    scheme = parts.scheme.lower()
    if scheme not in HTTP_SCHEMES or not parts.netloc:
        return bare

    host = (parts.hostname or "").lower()
    netloc = host if port in (None, DEFAULT_PORTS[scheme]) else f"{host}:{port}"
    return urlunparse((scheme, netloc, parts.path or "/", parts.params, parts.query, ""))


def remove_dot_segments(path: str) -> str:
    """Remove "." and ".." segments from a URL path (RFC 3986, 5.2.4)."""
    if "." not in path:
        return path

    output: list[str] = []
    segments = path.split("/")
    for segment in segments[1:] if path.startswith("/") else segments:
        if segment == "..":
            if output:
                output.pop()
        elif segment != ".":
            output.append(segment)

    # A trailing dot segment still denotes a directory
    if segments[-1] in (".", ".."):
        output.append("")

    result = "/".join(output)
    return "/" + result if path.startswith("/") else result


def is_valid_url(url: str) -> bool:
    """Check that a URL is absolute http(s) with a host and a sane port."""
    try:
        parsed = urlparse(url)
        parsed.port
    except ValueError:
        return False
    return parsed.scheme.lower() in HTTP_SCHEMES and bool(parsed.hostname)


def host_of(url: str) -> str:
    """Lowercased hostname of a URL, empty string when there is none."""
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""
