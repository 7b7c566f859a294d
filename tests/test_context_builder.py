"""Tests for prompt construction."""

from __future__ import annotations

from services.capture.assembler import DocumentAssembler
from services.context_builder import (
    TRUNCATION_MARKER,
    ContextBuilder,
    html_to_text,
)
from services.documents import Document, DocumentKind


def _page(fragment: str, url: str = "https://example.com/news") -> Document:
    return Document(
        source_url=url,
        kind=DocumentKind.FETCHED_PAGE,
        raw_content=DocumentAssembler().assemble(fragment, "News"),
        title="News",
    )


def test_long_content_is_truncated_with_marker():
    builder = ContextBuilder(max_chars=1000)
    prompt = builder.build(_page(f"<p>{'x' * 5000}</p>"), "What is this?")

    assert prompt.grounded
    assert prompt.truncated
    start = prompt.text.index("--- content start ---\n") + len("--- content start ---\n")
    end = prompt.text.index("\n--- content end ---")
    snippet = prompt.text[start:end]
    assert snippet == "x" * 1000 + TRUNCATION_MARKER


def test_short_content_is_not_truncated():
    prompt = ContextBuilder().build(_page("<p>Revenue grew 12%.</p>"), "How much?")

    assert not prompt.truncated
    assert TRUNCATION_MARKER not in prompt.text
    assert "Revenue grew 12%." in prompt.text
    assert "How much?" in prompt.text
    assert "https://example.com/news" in prompt.text


def test_isolation_styles_and_images_stay_out_of_prompt():
    prompt = ContextBuilder().build(
        _page('<h2>Results</h2><img src="https://example.com/c.png" alt="chart"><p>Up</p>'),
        "q",
    )

    assert "all: unset" not in prompt.text
    assert "c.png" not in prompt.text
    assert "## Results" in prompt.text


def test_html_to_text_collapses_blank_lines():
    text = html_to_text("<body><p>a</p><br><br><br><p>b</p></body>")

    assert "\n\n\n" not in text
    assert text.startswith("a")
    assert text.endswith("b")


def test_nothing_loaded_degrades_to_general_knowledge():
    prompt = ContextBuilder().build(Document.empty(), "Who won?", version=3)

    assert not prompt.grounded
    assert prompt.text.startswith("Warning:")
    assert "Who won?" in prompt.text
    assert prompt.document_version == 3


def test_error_document_is_never_used_as_context():
    error = Document(
        source_url="https://example.com",
        kind=DocumentKind.FETCHED_PAGE,
        raw_content="## ❌ Failed to load the page",
        is_error=True,
    )

    prompt = ContextBuilder().build(error, "Summarize please")

    assert not prompt.grounded
    assert "Failed to load" not in prompt.text
    assert "failed" in prompt.warning


def test_pdf_prompt_states_content_is_unavailable():
    prompt = ContextBuilder().build(
        Document.pdf("https://example.com/report.pdf", title="report.pdf"), "Totals?"
    )

    assert not prompt.grounded
    assert "cannot be forwarded" in prompt.text
    assert "report.pdf" in prompt.text
    assert prompt.warning


def test_summary_uses_summary_instruction():
    prompt = ContextBuilder().build(_page("<p>Body text</p>"), "ignored", is_summary=True)

    assert "Summarize the provided document" in prompt.text
    assert "ignored" not in prompt.text
