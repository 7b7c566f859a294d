"""Tests for the versioned document store."""

from __future__ import annotations

import pytest

from core.exceptions import StaleDocumentError
from services.documents import Document, DocumentKind, DocumentStore


def _page(url: str) -> Document:
    return Document(source_url=url, kind=DocumentKind.FETCHED_PAGE, raw_content="<p>x</p>")


def test_store_starts_empty():
    store = DocumentStore()

    snapshot = store.snapshot()
    assert snapshot.version == 0
    assert snapshot.document.kind is DocumentKind.NONE
    assert not snapshot.document.is_loaded


def test_reserve_then_commit_installs_document():
    store = DocumentStore()

    version = store.reserve()
    snapshot = store.commit(version, _page("https://a.example"))

    assert snapshot.version == version
    assert snapshot.document.source_url == "https://a.example"


def test_reserve_blanks_the_previous_document():
    store = DocumentStore()
    store.replace(_page("https://a.example"))

    store.reserve()

    assert store.snapshot().document.kind is DocumentKind.NONE


def test_later_load_wins_over_slower_earlier_one():
    store = DocumentStore()
    slow = store.reserve()
    fast = store.reserve()
    store.commit(fast, _page("https://fast.example"))

    with pytest.raises(StaleDocumentError):
        store.commit(slow, _page("https://slow.example"))

    assert store.snapshot().document.source_url == "https://fast.example"


def test_clear_invalidates_pending_load():
    store = DocumentStore()
    pending = store.reserve()

    cleared = store.clear()

    assert cleared.document.kind is DocumentKind.NONE
    with pytest.raises(StaleDocumentError):
        store.commit(pending, _page("https://a.example"))
    assert store.snapshot().document.kind is DocumentKind.NONE


def test_is_stale_tracks_versions():
    store = DocumentStore()
    snapshot = store.replace(_page("https://a.example"))

    assert not store.is_stale(snapshot)
    store.replace(Document.pdf("https://b.example/doc.pdf"))
    assert store.is_stale(snapshot)
