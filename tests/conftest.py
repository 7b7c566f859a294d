"""Shared test fixtures for pytest.

``ENVIRONMENT`` is forced to ``test`` before the app is imported so settings
load from defaults without any env file.
"""

import os
from collections.abc import AsyncGenerator, Generator
from unittest.mock import AsyncMock

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient


os.environ.setdefault("ENVIRONMENT", "test")

from dependencies.workspace import get_workspace
from main import app
from services.capture.browser_driver import BrowserDriver, RenderedPage
from services.capture.pipeline import CaptureService
from services.workspace import Workspace
from tests.fixtures.ollama import make_ollama_client, ndjson_handler
from tests.fixtures.pages import ARTICLE_PAGE


@pytest.fixture
def fake_driver() -> AsyncMock:
    """BrowserDriver stand-in returning the sample article page."""
    driver = AsyncMock(spec=BrowserDriver)
    driver.capture.return_value = RenderedPage(
        html=ARTICLE_PAGE,
        final_url="https://example.com/news/q3",
        title="Quarterly earnings",
    )
    return driver


@pytest.fixture
def ollama_lines() -> list[bytes]:
    """Lines streamed by the fake Ollama server; tests may replace them."""
    return [
        b'{"response":"Revenue ","done":false}\n',
        b'{"response":"grew.","done":false}\n',
        b'{"response":"","done":true}\n',
    ]


@pytest.fixture
def workspace(fake_driver: AsyncMock, ollama_lines: list[bytes]) -> Workspace:
    def handler(request: httpx.Request) -> httpx.Response:
        if b'"stream":false' in request.content.replace(b" ", b""):
            return httpx.Response(200, json={"response": "Short summary", "done": True})
        return ndjson_handler(*ollama_lines)(request)

    return Workspace(
        capture_service=CaptureService(fake_driver),
        client=make_ollama_client(handler),
        chat_model="test-model",
        summary_model="summary-model",
    )


@pytest.fixture
def client(workspace: Workspace) -> Generator[TestClient, None, None]:
    """
    Create a test client for the FastAPI application.
    """
    app.dependency_overrides[get_workspace] = lambda: workspace
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.pop(get_workspace, None)


@pytest_asyncio.fixture
async def async_client(workspace: Workspace) -> AsyncGenerator[AsyncClient, None]:
    """Async client bound to the test workspace."""
    app.dependency_overrides[get_workspace] = lambda: workspace
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
    app.dependency_overrides.pop(get_workspace, None)
