"""Current-document state for the workspace.

* Document       - immutable snapshot of whatever the user has loaded (a
  captured page, an error notice, or a PDF reference).
* DocumentStore  - owned container holding exactly one current Document with
  compare-and-swap replacement. Every load or clear bumps a version counter;
  a capture that started under an older version cannot overwrite a newer
  load and is reported as stale instead.

Store mutations never await, so each one is atomic on the event loop.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

from core.exceptions import StaleDocumentError


logger = logging.getLogger(__name__)


class DocumentKind(StrEnum):
    PDF = "pdf"
    FETCHED_PAGE = "fetched_page"
    NONE = "none"


@dataclass(frozen=True, slots=True)
class Document:
    """A loaded source. Error notices are FETCHED_PAGE documents with is_error."""

    source_url: str
    kind: DocumentKind
    raw_content: str
    is_error: bool = False
    title: str | None = None

    @classmethod
    def empty(cls) -> Document:
        return cls(source_url="", kind=DocumentKind.NONE, raw_content="")

    @classmethod
    def pdf(cls, source_url: str, title: str | None = None) -> Document:
        return cls(
            source_url=source_url,
            kind=DocumentKind.PDF,
            raw_content="",
            title=title,
        )

    @property
    def is_loaded(self) -> bool:
        return self.kind is not DocumentKind.NONE


@dataclass(frozen=True, slots=True)
class DocumentSnapshot:
    """A document together with the store version it was read at."""

    version: int
    document: Document


class DocumentStore:
    """Single-active document container with versioned replacement."""

    def __init__(self) -> None:
        self._version = 0
        self._document = Document.empty()

    @property
    def version(self) -> int:
        return self._version

    def snapshot(self) -> DocumentSnapshot:
        return DocumentSnapshot(version=self._version, document=self._document)

    def is_stale(self, snapshot: DocumentSnapshot) -> bool:
        """True if the store changed since ``snapshot`` was taken."""
        return snapshot.version != self._version

    def reserve(self) -> int:
        """Start a new load: invalidate the current document, return its version.

        The returned version is the ticket that ``commit`` must present.
        """
        self._version += 1
        self._document = Document.empty()
        return self._version

    def commit(self, expected_version: int, document: Document) -> DocumentSnapshot:
        """Install ``document`` if nothing newer happened since ``reserve``.

        Raises:
            StaleDocumentError: If another load or a clear superseded the
                reservation.
        """
        if expected_version != self._version:
            logger.info(
                "Discarding stale document for %s (reserved v%d, current v%d)",
                document.source_url,
                expected_version,
                self._version,
            )
            raise StaleDocumentError(
                f"A newer document replaced the load of {document.source_url}"
            )
        self._document = document
        return self.snapshot()

    def replace(self, document: Document) -> DocumentSnapshot:
        """Reserve and commit in one step (used for loads that need no I/O)."""
        version = self.reserve()
        return self.commit(version, document)

    def clear(self) -> DocumentSnapshot:
        self.reserve()
        return self.snapshot()
