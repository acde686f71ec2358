"""Tests for document extraction."""

from datetime import datetime, timezone

from webcrawler.constants import METADATA_KEYS, NO_TITLE_PLACEHOLDER
from webcrawler.extractor import extract
from webcrawler.models import Document

PAGE_URL = "https://example.com/dir/page.html"


def make_document(html: str, status_code: int = 200) -> Document:
    return Document(
        url=PAGE_URL,
        body=html,
        status_code=status_code,
        headers={"Content-Type": "text/html; charset=utf-8"},
    )


class TestExtract:
    """Test cases for extract()."""

    def test_full_page(self):
        html = """
        <html>
            <head>
                <title>Test Page</title>
                <meta name="Description" content="Test description">
                <meta name="keywords" content="test, crawl">
                <meta name="author" content="Jane">
                <meta name="viewport" content="width=device-width">
                <meta charset="utf-8">
            </head>
            <body>
                <h1>Main Heading</h1>
                <p>Some <b>content</b> here</p>
                <a href="/about" title="About us" target="_blank">About</a>
                <a href="other.html">Other</a>
                <img src="img/logo.png" alt="Logo" width="100" height="50">
            </body>
        </html>
        """
        timestamp = datetime(2026, 1, 1, tzinfo=timezone.utc)

        page = extract(make_document(html), depth=1, timestamp=timestamp)

        assert page.title == "Test Page"
        assert page.url == PAGE_URL
        assert page.timestamp == timestamp
        assert page.status_code == 200
        assert page.content_type == "text/html; charset=utf-8"
        assert page.depth == 1

        assert [link.absolute_url for link in page.links] == [
            "https://example.com/about",
            "https://example.com/dir/other.html",
        ]
        assert page.links[0].text == "About"
        assert page.links[0].title == "About us"
        assert page.links[0].target == "_blank"
        assert page.links[1].target == "_self"

        assert len(page.images) == 1
        image = page.images[0]
        assert image.absolute_src == "https://example.com/dir/img/logo.png"
        assert image.alt == "Logo"
        assert image.width == "100"
        assert image.height == "50"

        assert page.metadata == {
            "description": "Test description",
            "keywords": "test, crawl",
            "author": "Jane",
            "viewport": "width=device-width",
            "charset": "utf-8",
        }
        assert "Some content here" in page.extracted_text

    def test_title_falls_back_to_heading(self):
        page = extract(make_document("<html><body><h2>Sub</h2><h1>Main</h1></body></html>"))
        assert page.title == "Sub"

    def test_empty_title_falls_back_to_heading(self):
        page = extract(make_document("<html><head><title>  </title></head><body><h3>Heading</h3></body></html>"))
        assert page.title == "Heading"

    def test_no_title_placeholder(self):
        page = extract(make_document("<html><body><p>Nothing</p></body></html>"))
        assert page.title == NO_TITLE_PLACEHOLDER

    def test_missing_metadata_is_empty_string(self):
        page = extract(make_document("<html><body></body></html>"))
        assert set(page.metadata) == set(METADATA_KEYS)
        assert all(value == "" for value in page.metadata.values())

    def test_charset_from_http_equiv(self):
        html = '<html><head><meta http-equiv="Content-Type" content="text/html; charset=ISO-8859-1"></head></html>'
        page = extract(make_document(html))
        assert page.metadata["charset"] == "ISO-8859-1"

    def test_non_visible_text_is_excluded(self):
        html = """
        <html><head><style>.x { color: red; }</style></head>
        <body>
            <script>var secret = 1;</script>
            <noscript>Enable JS</noscript>
            <p>Visible</p>
        </body></html>
        """
        page = extract(make_document(html))
        assert page.extracted_text == "Visible"

    def test_duplicate_anchors_are_all_recorded(self):
        html = '<a href="/a">one</a><a href="/a">two</a><a href="/b">three</a>'
        page = extract(make_document(html))

        assert len(page.links) == 3
        assert page.unique_links() == ["https://example.com/a", "https://example.com/b"]

    def test_base_href_is_honored(self):
        html = '<html><head><base href="https://cdn.example.org/root/"></head><body><a href="x">X</a></body></html>'
        page = extract(make_document(html))
        assert page.links[0].absolute_url == "https://cdn.example.org/root/x"

    def test_malformed_href_is_skipped(self):
        html = '<a href="http://[::1">bad</a><a href="/good">good</a>'
        page = extract(make_document(html))
        assert [link.absolute_url for link in page.links] == ["https://example.com/good"]

    def test_anchor_without_href_is_ignored(self):
        page = extract(make_document('<a name="anchor">no link</a>'))
        assert page.links == ()

    def test_raw_html_can_be_dropped(self):
        html = "<html><body>x</body></html>"
        assert extract(make_document(html)).raw_html == html
        assert extract(make_document(html), keep_raw_html=False).raw_html is None

    def test_url_override(self):
        page = extract(make_document("<p>x</p>"), url="https://example.com/requested")
        assert page.url == "https://example.com/requested"

    def test_links_resolve_against_document_url(self):
        html = '<a href="child">c</a><img src="../logo.png">'
        page = extract(make_document(html), url="https://example.com/old")

        assert page.url == "https://example.com/old"
        assert page.links[0].absolute_url == "https://example.com/dir/child"
        assert page.images[0].absolute_src == "https://example.com/logo.png"

    def test_summary_row(self):
        page = extract(make_document('<title>T</title><a href="/a">a</a><img src="/i.png">'))
        row = page.summary_row()
        assert row["title"] == "T"
        assert row["statusCode"] == 200
        assert row["linkCount"] == 1
        assert row["imageCount"] == 1
