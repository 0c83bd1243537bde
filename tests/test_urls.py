"""Tests for URL normalization helpers."""
import pytest

from linkcrawler.urls import host_of, is_valid_url, normalize_url, remove_dot_segments


class TestNormalizeUrl:
    @pytest.mark.parametrize("url,expected", [
        ("http://example.com/page", "http://example.com/page"),
        ("HTTP://Example.COM/Page", "http://example.com/Page"),
        ("http://example.com:80/a", "http://example.com/a"),
        ("https://example.com:443/a", "https://example.com/a"),
        ("http://example.com:8080/a", "http://example.com:8080/a"),
        ("http://example.com", "http://example.com/"),
        ("http://example.com/a#section", "http://example.com/a"),
        ("http://example.com/a?b=1&c=2", "http://example.com/a?b=1&c=2"),
    ])
    def test_http_urls(self, url, expected):
        assert normalize_url(url) == expected

    @pytest.mark.parametrize("url,expected", [
        ("mailto:someone@example.com", "mailto:someone@example.com"),
        ("javascript:void(0);", "javascript:void(0);"),
        ("relative/page#top", "relative/page"),
    ])
    def test_opaque_urls_only_lose_fragment(self, url, expected):
        assert normalize_url(url) == expected

    @pytest.mark.parametrize("url", ["http://[::1", "http://[::1#frag", "http://example.com:port/x"])
    def test_unparseable_urls_are_returned_verbatim(self, url):
        assert normalize_url(url) == url.partition("#")[0]

    def test_idempotent(self):
        once = normalize_url("HTTP://Example.com:80/a/b?x=1#y")
        assert normalize_url(once) == once


class TestRemoveDotSegments:
    @pytest.mark.parametrize("path,expected", [
        ("/evil/../index.html", "/index.html"),
        ("/evil/evil2/../index.html", "/evil/index.html"),
        ("/evil/evil2/../../index.html", "/index.html"),
        ("/a/./b", "/a/b"),
        ("/a/b/..", "/a/"),
        ("/..", "/"),
        ("/plain/path.html", "/plain/path.html"),
        ("", ""),
    ])
    def test_paths(self, path, expected):
        assert remove_dot_segments(path) == expected


class TestValidation:
    @pytest.mark.parametrize("url,expected", [
        ("http://example.com/", True),
        ("https://example.com:8443/x", True),
        ("test", False),
        ("ftp://example.com/file", False),
        ("mailto:a@b.c", False),
        ("http://example.com:notaport/", False),
        ("http:///path-only", False),
        ("http://[::1", False),
    ])
    def test_is_valid_url(self, url, expected):
        assert is_valid_url(url) is expected

    def test_host_of(self):
        assert host_of("https://Sub.Example.com:8000/x") == "sub.example.com"
        assert host_of("/relative") == ""
        assert host_of("http://[::1/broken") == ""
