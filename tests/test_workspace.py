"""Tests for the Workspace: document loads, chat turns and summaries."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock

import httpx
import pytest

from core.exceptions import InputValidationError, StaleDocumentError, StreamBusyError
from services.capture.browser_driver import BrowserDriver, RenderedPage
from services.capture.exceptions import NavigationError
from services.capture.pipeline import CaptureService
from services.documents import DocumentKind
from services.inference.exceptions import InferenceHTTPError
from services.inference.transcript import TurnStatus
from services.workspace import Workspace
from tests.fixtures.ollama import make_ollama_client, ndjson_handler
from tests.fixtures.pages import ARTICLE_PAGE, ARTICLE_TEXT


def _workspace(driver: AsyncMock, handler) -> Workspace:
    return Workspace(
        capture_service=CaptureService(driver),
        client=make_ollama_client(handler),
        chat_model="test-model",
        summary_model="summary-model",
    )


@pytest.mark.asyncio
async def test_navigate_search_words_go_through_search_engine(
    workspace: Workspace, fake_driver: AsyncMock
):
    snapshot = await workspace.navigate("quarterly earnings")

    fake_driver.capture.assert_awaited_once_with(
        "https://www.bing.com/search?q=quarterly+earnings"
    )
    assert snapshot.document.kind is DocumentKind.FETCHED_PAGE
    assert snapshot.version == 1
    assert workspace.document is snapshot.document


@pytest.mark.asyncio
async def test_navigate_to_pdf_url_skips_capture(workspace: Workspace, fake_driver: AsyncMock):
    snapshot = await workspace.navigate("https://example.com/files/report.pdf")

    fake_driver.capture.assert_not_awaited()
    assert snapshot.document.kind is DocumentKind.PDF
    assert snapshot.document.source_url == "https://example.com/files/report.pdf"


@pytest.mark.asyncio
async def test_navigate_rejects_private_hosts(workspace: Workspace, fake_driver: AsyncMock):
    with pytest.raises(InputValidationError):
        await workspace.navigate("http://192.168.1.1/")

    fake_driver.capture.assert_not_awaited()


@pytest.mark.asyncio
async def test_failed_capture_installs_error_document():
    driver = AsyncMock(spec=BrowserDriver)
    driver.capture.side_effect = NavigationError("Navigation timed out after 30s")
    workspace = _workspace(driver, ndjson_handler())

    snapshot = await workspace.navigate("https://example.com/slow")

    assert snapshot.document.is_error
    assert "timed out" in snapshot.document.raw_content


@pytest.mark.asyncio
async def test_clear_during_capture_discards_late_result():
    gate = asyncio.Event()

    async def slow_capture(url: str) -> RenderedPage:
        await gate.wait()
        return RenderedPage(html=ARTICLE_PAGE, final_url=url)

    driver = AsyncMock(spec=BrowserDriver)
    driver.capture.side_effect = slow_capture
    workspace = _workspace(driver, ndjson_handler())

    load = asyncio.create_task(workspace.navigate("https://example.com/news"))
    await asyncio.sleep(0)
    workspace.clear_document()
    gate.set()

    with pytest.raises(StaleDocumentError):
        await load
    assert workspace.document.kind is DocumentKind.NONE


@pytest.mark.asyncio
async def test_chat_prompt_includes_loaded_page():
    prompts: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        prompts.append(json.loads(request.content)["prompt"])
        return ndjson_handler(b'{"response":"Yes.","done":true}\n')(request)

    driver = AsyncMock(spec=BrowserDriver)
    driver.capture.return_value = RenderedPage(
        html=ARTICLE_PAGE, final_url="https://example.com/news/q3"
    )
    workspace = _workspace(driver, handler)
    await workspace.navigate("https://example.com/news/q3")

    session = workspace.start_chat("  Did revenue grow?  ")
    status = await session.wait()

    assert status is TurnStatus.COMPLETE
    assert session.turn.user_text == "Did revenue grow?"
    assert session.turn.ai_text == "Yes."
    assert ARTICLE_TEXT in prompts[0]
    assert "Did revenue grow?" in prompts[0]


@pytest.mark.asyncio
async def test_second_message_rejected_until_first_finishes(workspace: Workspace):
    first = workspace.start_chat("First question")

    with pytest.raises(StreamBusyError):
        workspace.start_chat("Second question")

    await first.wait()
    assert first.turn.ai_text == "Revenue grew."
    second = workspace.start_chat("Second question")
    await second.wait()
    assert [t.index for t in workspace.transcript.turns] == [0, 1]


@pytest.mark.asyncio
async def test_blank_message_rejected(workspace: Workspace):
    with pytest.raises(InputValidationError):
        workspace.start_chat("   ")

    assert workspace.transcript.turns == ()


@pytest.mark.asyncio
async def test_stop_chat_without_session(workspace: Workspace):
    assert workspace.stop_chat() is False


@pytest.mark.asyncio
async def test_summary_without_document_is_not_generated(workspace: Workspace):
    result = await workspace.summarize()

    assert not result.generated
    assert "Content extraction failed or nothing is loaded" in result.text


@pytest.mark.asyncio
async def test_summary_of_loaded_page(workspace: Workspace):
    await workspace.navigate("https://example.com/news/q3")

    result = await workspace.summarize()

    assert result.generated
    assert result.model == "summary-model"
    assert result.text == "## Summary (summary-model)\n\nShort summary"


@pytest.mark.asyncio
async def test_summary_connection_failure_returns_guidance(fake_driver: AsyncMock):
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    workspace = _workspace(fake_driver, refuse)
    await workspace.navigate("https://example.com/news/q3")

    result = await workspace.summarize()

    assert not result.generated
    assert "ollama pull summary-model" in result.text


@pytest.mark.asyncio
async def test_summary_http_error_propagates(fake_driver: AsyncMock):
    def broken(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="busy")

    workspace = _workspace(fake_driver, broken)
    await workspace.navigate("https://example.com/news/q3")

    with pytest.raises(InferenceHTTPError):
        await workspace.summarize()
