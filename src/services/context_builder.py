"""Prompt construction from the current document and a user message."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from bs4 import BeautifulSoup
from markdownify import ATX, MarkdownConverter

from services.documents import Document, DocumentKind


TRUNCATION_MARKER = "... (content truncated)"

NOTHING_LOADED_WARNING = "No content is loaded in the viewer."
CAPTURE_FAILED_WARNING = (
    "Fetching the web page failed, so only general knowledge is available."
)

SUMMARY_INSTRUCTION = (
    "Summarize the provided document in at most 300 words. Use structured "
    "Markdown: second-level headings, lists and bold text, and present any "
    "data as a Markdown table."
)
ANSWER_INSTRUCTION = (
    "Answer the user's question using the context above: {question}\n"
    "Use structured Markdown: lists, bold text and tables where appropriate."
)


class PromptMarkdownConverter(MarkdownConverter):
    """HTML to Markdown text for prompts. Images carry no text and are dropped."""

    def __init__(self, **options: Any) -> None:
        options.setdefault("heading_style", ATX)
        options.setdefault("bullets", "-")
        options.setdefault("wrap", False)
        super().__init__(**options)

    def convert_img(self, el: object, text: str, parent_tags: set[str]) -> str:  # noqa: ARG002
        return ""


def html_to_text(html: str, converter: MarkdownConverter | None = None) -> str:
    """Markdown text of a document's body, whitespace-normalized."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.find_all(["head", "style", "script", "title"]):
        tag.decompose()
    root = soup.body or soup
    markdown = (converter or PromptMarkdownConverter()).convert_soup(root)
    markdown = markdown.replace("\r\n", "\n")
    lines = [line.strip() for line in markdown.split("\n")]
    return re.sub(r"\n{3,}", "\n\n", "\n".join(lines)).strip()


@dataclass(frozen=True, slots=True)
class Prompt:
    """An immutable prompt snapshot.

    ``grounded`` is False when the model must fall back to general knowledge;
    ``warning`` then states why.
    """

    text: str
    grounded: bool
    truncated: bool = False
    warning: str | None = None
    document_version: int | None = None


class ContextBuilder:
    def __init__(self, max_chars: int = 1000) -> None:
        self.max_chars = max_chars
        self.converter = PromptMarkdownConverter()

    def snippet(self, content: str) -> tuple[str, bool]:
        """Truncate ``content`` to ``max_chars`` and append the marker if cut."""
        if len(content) > self.max_chars:
            return content[: self.max_chars] + TRUNCATION_MARKER, True
        return content, False

    def build(
        self,
        document: Document,
        user_message: str,
        is_summary: bool = False,
        *,
        version: int | None = None,
    ) -> Prompt:
        instruction = (
            SUMMARY_INSTRUCTION
            if is_summary
            else ANSWER_INSTRUCTION.format(question=user_message)
        )

        if document.kind is DocumentKind.NONE:
            return self._degraded(NOTHING_LOADED_WARNING, user_message, version)
        if document.is_error:
            return self._degraded(CAPTURE_FAILED_WARNING, user_message, version)

        if document.kind is DocumentKind.PDF:
            name = f" ({document.title})" if document.title else ""
            context = (
                f"The user is viewing a PDF document{name} at {document.source_url}.\n"
                "The binary PDF cannot be forwarded to you and none of its text "
                "is included below. Say so if the question depends on its "
                "contents, and answer from the title, URL and general knowledge."
            )
            return Prompt(
                text=f"{context}\n\n{instruction}",
                grounded=False,
                warning="PDF content is not available to the model.",
                document_version=version,
            )

        text = html_to_text(document.raw_content, self.converter)
        if not text:
            return self._degraded(
                "The fetched page contains no readable text.", user_message, version
            )
        snippet, truncated = self.snippet(text)
        context = (
            f"Use the following content fetched from {document.source_url} "
            "to reply:\n\n"
            "--- content start ---\n"
            f"{snippet}\n"
            "--- content end ---"
        )
        return Prompt(
            text=f"{context}\n\n{instruction}",
            grounded=True,
            truncated=truncated,
            document_version=version,
        )

    @staticmethod
    def _degraded(warning: str, user_message: str, version: int | None) -> Prompt:
        text = (
            f"Warning: no document context is available ({warning}). "
            f"The user's question is: {user_message}\n"
            "Answer from general knowledge only, and use Markdown formatting."
        )
        return Prompt(
            text=text, grounded=False, warning=warning, document_version=version
        )
