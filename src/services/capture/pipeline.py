"""Capture boundary: URL in, Document out.

``CaptureService.capture`` is the only entry point used by the workspace and
the ``/fetch-web`` endpoint. Input validation errors propagate (they are the
caller's fault and map to 400); every failure after validation is converted
into an error Document so the UI always has something to show.
"""

from __future__ import annotations

from dataclasses import dataclass

from bs4 import BeautifulSoup

from core.config import Settings
from core.error_handler import StructuredLogger
from services.capture.assembler import DocumentAssembler, error_document
from services.capture.browser_driver import BrowserDriver
from services.capture.content_selector import ContentSelector
from services.capture.exceptions import CaptureError
from services.capture.sanitizer import ExtractionContext, HTMLSanitizer
from services.capture.urls import ensure_capture_url
from services.documents import Document, DocumentKind


logger = StructuredLogger(__name__)


@dataclass(frozen=True)
class CaptureResult:
    url: str
    document: Document
    error_code: str | None = None

    @property
    def ok(self) -> bool:
        return not self.document.is_error

    @property
    def status_code(self) -> int:
        return 200 if self.ok else 500


class CaptureService:
    """Run browser capture, selection, sanitization and assembly for one URL."""

    def __init__(
        self,
        driver: BrowserDriver,
        *,
        selector: ContentSelector | None = None,
        sanitizer: HTMLSanitizer | None = None,
        assembler: DocumentAssembler | None = None,
        allow_private_hosts: bool = False,
    ) -> None:
        self.driver = driver
        self.selector = selector or ContentSelector()
        self.sanitizer = sanitizer or HTMLSanitizer()
        self.assembler = assembler or DocumentAssembler()
        self.allow_private_hosts = allow_private_hosts

    @classmethod
    def from_settings(cls, settings: Settings) -> CaptureService:
        driver = BrowserDriver(
            user_agent=settings.CAPTURE_USER_AGENT,
            timeout_seconds=settings.CAPTURE_TIMEOUT_SECONDS,
            scroll_pause_ms=settings.CAPTURE_SCROLL_PAUSE_MS,
            settle_pause_ms=settings.CAPTURE_SETTLE_PAUSE_MS,
        )
        return cls(
            driver,
            selector=ContentSelector(
                min_text_length=settings.CAPTURE_MIN_CONTENT_LENGTH
            ),
            sanitizer=HTMLSanitizer(
                strip_inline_styles=settings.CAPTURE_STRIP_INLINE_STYLES
            ),
            allow_private_hosts=settings.CAPTURE_ALLOW_PRIVATE_HOSTS,
        )

    async def capture(self, url: str | None) -> CaptureResult:
        """Capture ``url`` into a Document.

        Raises:
            InputValidationError: If ``url`` is missing or not allowed. No
                browser is launched in that case.
        """
        target = ensure_capture_url(url, allow_private_hosts=self.allow_private_hosts)
        logger.info("Capturing page", url=target)

        try:
            page = await self.driver.capture(target)
        except CaptureError as e:
            logger.warning(
                "Page capture failed",
                url=target,
                error_code=e.error_code,
                error_message=e.message,
            )
            return self._failure(target, e.message, e.error_code)
        except Exception as e:
            logger.exception(
                "Unexpected page capture failure",
                url=target,
                exception_type=type(e).__name__,
            )
            return self._failure(target, f"Page capture failed: {e}", "capture_failed")

        content = self.extract(page.html, page.final_url or target, page.title)
        logger.info(
            "Page captured",
            url=target,
            final_url=page.final_url,
            content_length=len(content),
        )
        return CaptureResult(
            url=target,
            document=Document(
                source_url=target,
                kind=DocumentKind.FETCHED_PAGE,
                raw_content=content,
                title=page.title,
            ),
        )

    def extract(self, html: str, base_url: str, title: str | None = None) -> str:
        """Turn a rendered DOM snapshot into an isolated, sanitized document."""
        soup = BeautifulSoup(html, "html.parser")
        context = ExtractionContext(base_url=base_url)
        self.sanitizer.strip_chrome(soup, context)
        root = self.selector.select(soup)
        context.root = root
        self.sanitizer.clean(root, base_url, context)
        logger.debug(
            "Extraction finished",
            url=base_url,
            root=root.name,
            removed=len(context.removed),
            rewritten=len(context.rewritten),
        )

        if root.name in {"body", "[document]"}:
            fragment = root.decode_contents()
        else:
            fragment = str(root)
        return self.assembler.assemble(fragment, title)

    def _failure(self, url: str, message: str, error_code: str) -> CaptureResult:
        return CaptureResult(
            url=url,
            document=Document(
                source_url=url,
                kind=DocumentKind.FETCHED_PAGE,
                raw_content=error_document(url, message, error_code),
                is_error=True,
            ),
            error_code=error_code,
        )
