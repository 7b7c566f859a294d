"""Primary-content selection for captured pages."""

from __future__ import annotations

import logging

from bs4 import BeautifulSoup, Tag


logger = logging.getLogger(__name__)

# Evaluated in order; the first match of each selector is a candidate
MAIN_CONTENT_SELECTORS: tuple[str, ...] = (
    "article",
    "main",
    '[role="main"]',
    "#content",
    ".content",
    ".post",
    ".entry",
    ".article",
    ".markdown-body",
    ".readme",
    'div[class*="content"]',
    'div[id*="content"]',
)

DEFAULT_MIN_TEXT_LENGTH = 200


class ContentSelector:
    """Pick the subtree most likely to hold a page's primary content.

    A candidate must carry more than ``min_text_length`` characters of text,
    which rejects empty structural wrappers such as a bare ``<main>``.
    """

    def __init__(
        self,
        selectors: tuple[str, ...] = MAIN_CONTENT_SELECTORS,
        min_text_length: int = DEFAULT_MIN_TEXT_LENGTH,
    ) -> None:
        self.selectors = selectors
        self.min_text_length = min_text_length

    def select(self, soup: BeautifulSoup | Tag) -> Tag:
        for selector in self.selectors:
            candidate = soup.select_one(selector)
            if candidate is None:
                continue
            text_length = len(candidate.get_text().strip())
            if text_length > self.min_text_length:
                logger.debug(
                    "Selected %r (%d chars of text) as primary content",
                    selector,
                    text_length,
                )
                return candidate

        body = soup.find("body")
        if isinstance(body, Tag):
            logger.debug("No content candidate qualified; falling back to <body>")
            return body
        return soup
