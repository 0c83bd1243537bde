"""Tests for link and metadata extraction."""
import pytest

from linkcrawler.document import Document
from linkcrawler.extractor import extract_links_info, extract_meta_info
from linkcrawler.link import Link

PAGE = """
<html>
  <head>
    <title>  Home Page  </title>
    <meta name="description" content=" A small test site ">
    <meta name="keywords" content="crawler, links">
    <link rel="canonical" href="https://example.com/home">
  </head>
  <body>
    <h1> Welcome </h1>
    <h1>Second <em>heading</em></h1>
    <h2>Section</h2>
    <a href="/about"> About <b>us</b></a>
    <a href="">empty</a>
    <a>no href</a>
    <a href="   ">blank</a>
    <a href="mailto:someone@example.com">Mail</a>
    <a href="http://other.com/">Other</a>
  </body>
</html>
"""


@pytest.fixture
def owner():
    return Link("http://example.com/index.html")


class TestExtractLinksInfo:
    def test_builds_children_for_non_empty_hrefs(self, owner):
        children = extract_links_info(Document(PAGE), owner)
        assert [child.original_uri for child in children] == [
            "/about", "mailto:someone@example.com", "http://other.com/",
        ]

    def test_children_point_back_to_owner(self, owner):
        children = extract_links_info(Document(PAGE), owner)
        assert all(child.parent is owner for child in children)
        assert all(child.crawl_depth == 1 for child in children)

    def test_records_anchor_text(self, owner):
        about = extract_links_info(Document(PAGE), owner)[0]
        assert about.get_meta_info("links_text") == ["About us"]

    def test_does_not_apply_policy(self, owner):
        children = extract_links_info(Document(PAGE), owner)
        assert any(not child.is_crawlable() for child in children)
        assert any(child.is_external() for child in children)
        assert all(child.should_visit for child in children)

    def test_no_anchors(self, owner):
        assert extract_links_info(Document("<p>nothing here</p>"), owner) == []


class TestExtractMetaInfo:
    def test_full_page(self, owner):
        extract_meta_info(Document(PAGE), owner)
        assert owner.get_meta_info("title") == "Home Page"
        assert owner.get_meta_info("meta_description") == "A small test site"
        assert owner.get_meta_info("meta_keywords") == "crawler, links"
        assert owner.get_meta_info("canonical_link") == "https://example.com/home"
        assert owner.get_meta_info("h1_count") == 2
        assert owner.get_meta_info("h1_contents") == ["Welcome", "Second heading"]
        assert owner.get_meta_info("h2_count") == 1
        assert owner.get_meta_info("h2_contents") == ["Section"]

    def test_missing_elements_use_defaults(self, owner):
        extract_meta_info(Document("<html><body><p>bare</p></body></html>"), owner)
        assert owner.get_meta_info("title") == ""
        assert owner.get_meta_info("meta_description") == ""
        assert owner.get_meta_info("meta_keywords") == ""
        assert owner.get_meta_info("canonical_link") == ""
        assert owner.get_meta_info("h1_count") == 0
        assert owner.get_meta_info("h1_contents") == []
        assert owner.get_meta_info("h2_count") == 0
        assert owner.get_meta_info("h2_contents") == []

    def test_empty_document(self, owner):
        extract_meta_info(Document(""), owner)
        assert owner.get_meta_info("title") == ""
        assert owner.get_meta_info("h1_count") == 0


class TestDocument:
    def test_element_accessors(self):
        document = Document('<div class="a b"><p id="x">Hello <i>there</i></p></div>')
        paragraph = document.select_by_tag("p")[0]
        assert paragraph.text() == "Hello there"
        assert paragraph.html() == "Hello <i>there</i>"
        assert paragraph.attr("id") == "x"
        assert paragraph.attr("missing") is None
        assert paragraph.attr("missing", "") == ""
        assert document.select_by_tag("div")[0].attr("class") == "a b"

    def test_select_paths(self):
        document = Document(PAGE)
        assert [element.text() for element in document.select("body h1")] == ["Welcome", "Second heading"]
        assert document.select_one("head title").text() == "Home Page"
        assert document.select_one("table") is None
