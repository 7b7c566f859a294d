"""Tests for the isolated renderer."""

from __future__ import annotations

import html

from bs4 import BeautifulSoup

from services.capture.assembler import DocumentAssembler, error_document
from services.documents import Document, DocumentKind
from services.renderer import (
    INTERCEPT_SCRIPT,
    IsolatedRenderer,
    frame_csp,
    render_markdown,
    script_hash,
)


LINKED_PARAGRAPH = '<p>Hi <a href="https://example.com/b">next</a></p>'


def _page_document(fragment: str = LINKED_PARAGRAPH) -> Document:
    return Document(
        source_url="https://example.com/a",
        kind=DocumentKind.FETCHED_PAGE,
        raw_content=DocumentAssembler().assemble(fragment, "Page A"),
        title="Page A",
    )


def _frame(page: str):
    return BeautifulSoup(page, "html.parser").find("iframe", id="document-frame")


def test_html_document_is_framed_without_same_origin():
    page = IsolatedRenderer().render(_page_document())

    frame = _frame(page)
    assert frame is not None
    assert frame["sandbox"] == "allow-scripts"
    assert "allow-same-origin" not in page
    assert "allow-top-navigation" not in page
    assert frame["referrerpolicy"] == "no-referrer"


def test_framed_document_pins_interception_script_by_hash():
    page = IsolatedRenderer().render(_page_document())

    inner = BeautifulSoup(_frame(page)["srcdoc"], "html.parser")
    meta = inner.find("meta", attrs={"http-equiv": "Content-Security-Policy"})
    assert meta is not None
    assert f"'{script_hash(INTERCEPT_SCRIPT)}'" in meta["content"]
    assert meta["content"] == frame_csp()

    scripts = inner.find_all("script")
    assert [s.string for s in scripts] == [INTERCEPT_SCRIPT]
    assert inner.find("a", href="https://example.com/b") is not None


def test_frame_document_creates_missing_structure():
    framed = IsolatedRenderer().frame_document("<p>bare fragment</p>")

    soup = BeautifulSoup(framed, "html.parser")
    assert soup.head.find("meta", attrs={"http-equiv": "Content-Security-Policy"})
    assert soup.body.p.get_text() == "bare fragment"
    assert soup.body.find("script").string == INTERCEPT_SCRIPT


def test_interception_leaves_in_page_anchors_to_the_frame():
    fragment_check = INTERCEPT_SCRIPT.index("raw.charAt(0) === '#'")

    assert "anchor.getAttribute('href')" in INTERCEPT_SCRIPT
    assert fragment_check < INTERCEPT_SCRIPT.index("event.preventDefault()")
    assert fragment_check < INTERCEPT_SCRIPT.index("postMessage")


def test_host_page_posts_navigate_messages_from_frame_only():
    renderer = IsolatedRenderer("/api/v1/workspace/navigate")
    page = renderer.render(_page_document())

    host_script = BeautifulSoup(page, "html.parser").find_all("script")[-1].string
    assert host_script == renderer.host_script()
    assert "event.source !== frame.contentWindow" in host_script
    assert '"/api/v1/workspace/navigate"' in host_script


def test_host_csp_admits_both_scripts():
    renderer = IsolatedRenderer()
    csp = renderer.host_csp()

    assert script_hash(renderer.host_script()) in csp
    assert script_hash(INTERCEPT_SCRIPT) in csp
    assert "'unsafe-inline'" not in csp.split("script-src")[1].split(";")[0]


def test_error_document_renders_as_sanitized_markdown():
    doc = Document(
        source_url="https://example.com",
        kind=DocumentKind.FETCHED_PAGE,
        raw_content=error_document("https://example.com", "<script>alert(1)</script>"),
        is_error=True,
    )

    page = IsolatedRenderer().render(doc)

    soup = BeautifulSoup(page, "html.parser")
    prose = soup.find("div", class_="prose")
    assert prose.find("h2") is not None
    assert prose.find("script") is None
    assert _frame(page) is None


def test_render_markdown_strips_active_content():
    rendered = render_markdown(
        '[bad](javascript:void) <img src="x" onerror="alert(1)"> **ok**',
        "https://example.com/",
    )

    soup = BeautifulSoup(rendered, "html.parser")
    assert soup.find("strong").get_text() == "ok"
    assert "javascript:" not in rendered
    assert "onerror" not in rendered


def test_pdf_document_uses_plain_frame_with_download_link():
    doc = Document.pdf("https://example.com/report.pdf?x=1&y=2", title="report.pdf")

    page = IsolatedRenderer().render(doc)

    assert 'title="PDF Document Viewer"' in page
    assert html.escape("https://example.com/report.pdf?x=1&y=2") in page
    assert "Download PDF" in page
    assert "<script>" not in page


def test_empty_view():
    page = IsolatedRenderer().render(Document.empty())

    assert "Enter a URL or open a PDF" in page
    assert "<iframe" not in page
