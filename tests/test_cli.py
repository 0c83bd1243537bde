"""Tests for the command-line interface."""
import json
from pathlib import Path

import pytest

from linkcrawler import cli

SITE = {
    "http://example.com/": '<title>Home</title><a href="/about">About</a><a href="/gone">Gone</a>',
    "http://example.com/about": '<title>About</title><a href="http://other.com/">Other</a>',
    "http://other.com/": "<title>Other</title>",
}


@pytest.fixture
def adapter(fake_adapter, monkeypatch):
    site = fake_adapter(SITE)
    monkeypatch.setattr("linkcrawler.core.create_fetch_adapter", lambda strategy, config: site)
    return site


class TestMain:
    def test_writes_links_file(self, adapter, tmp_path):
        out = tmp_path / "out" / "links.json"
        assert cli.main(["http://example.com/", "--max-depth", "2", "--out", str(out)]) == 0

        records = json.loads(out.read_text(encoding="utf-8"))
        assert [record["full_url"] for record in records] == [
            "http://example.com/",
            "http://example.com/about",
            "http://example.com/gone",
            "http://other.com/",
        ]
        assert records[1]["meta_info"]["title"] == "About"

    def test_all_includes_unfetched_links(self, adapter, capsys):
        cli.main(["http://example.com/", "--max-depth", "1", "--no-probe", "--all", "--out", "-"])
        records = json.loads(capsys.readouterr().out)
        assert [record["state"] for record in records] == ["visited", "skipped_depth", "skipped_depth"]

    def test_broken_report_to_stdout(self, adapter, capsys):
        assert cli.main(["http://example.com/", "--report", "broken", "--out", "-"]) == 0
        assert json.loads(capsys.readouterr().out) == {
            "http://example.com/gone": {
                "source_page": "http://example.com/",
                "link": "http://example.com/gone",
                "status_code": 404,
            }
        }

    def test_external_report(self, adapter, capsys):
        cli.main(["http://example.com/", "--report", "external", "--out", "-"])
        records = json.loads(capsys.readouterr().out)
        assert [record["full_url"] for record in records] == ["http://other.com/"]

    def test_depth_report(self, adapter, capsys):
        cli.main(["http://example.com/", "--max-depth", "1", "--report", "depth", "--out", "-"])
        report = json.loads(capsys.readouterr().out)
        assert sorted(report) == ["0", "1"]

    def test_include_and_path_prefix_both_apply(self, fake_adapter, monkeypatch, capsys):
        docs = fake_adapter({
            "http://example.com/docs/": '<a href="/docs/a">a</a><a href="/docs/b">b</a><a href="/blog/a">blog</a>',
        })
        monkeypatch.setattr("linkcrawler.core.create_fetch_adapter", lambda strategy, config: docs)

        argv = ["http://example.com/docs/", "--path-prefix", "/docs/", "--include", r"/(docs/)?a?$", "--out", "-"]
        assert cli.main(argv) == 0
        records = json.loads(capsys.readouterr().out)
        assert [record["full_url"] for record in records] == [
            "http://example.com/docs/",
            "http://example.com/docs/a",
        ]
        assert docs.fetched == ["http://example.com/docs/", "http://example.com/docs/a"]

    def test_verbose_summary(self, adapter, capsys, tmp_path):
        cli.main(["http://example.com/", "--verbose", "--out", str(tmp_path / "r.json")])
        err = capsys.readouterr().err
        assert "CRAWL SUMMARY" in err
        assert "HTTP 404: 1" in err
        assert "Pages fetched" in err
        assert "Results written to" in err

    @pytest.mark.parametrize("argv", [
        ["http://example.com/", "--workers", "0"],
        ["http://example.com/", "--max-depth", "-1"],
        ["http://example.com/", "--timeout", "0"],
        [" "],
        ["http://example.com/", "--include", "(unclosed"],
    ])
    def test_invalid_options_exit_2(self, argv, capsys):
        assert cli.main(argv) == 2
        assert "error:" in capsys.readouterr().err

    def test_interrupt_writes_partial_results(self, fake_adapter, monkeypatch, capsys):
        def interrupt(url):
            if url.endswith("/about"):
                raise KeyboardInterrupt

        site = fake_adapter(SITE, on_fetch=interrupt)
        monkeypatch.setattr("linkcrawler.core.create_fetch_adapter", lambda strategy, config: site)

        assert cli.main(["http://example.com/", "--all", "--out", "-"]) == 0
        captured = capsys.readouterr()
        assert "Interrupted" in captured.err
        assert len(json.loads(captured.out)) == 3


class TestOutputPath:
    def test_generated_name(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        path = cli.generate_output_path("https://www.example.com/docs")
        assert path.parent == Path("crawls")
        assert path.name.startswith("www_example_com_")
        assert path.suffix == ".json"
        assert (tmp_path / "crawls").is_dir()
