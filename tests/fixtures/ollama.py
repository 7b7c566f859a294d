"""Fake Ollama server helpers built on httpx.MockTransport."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable

import httpx

from services.inference.client import OllamaClient


OLLAMA_TEST_URL = "http://ollama.test"

Handler = Callable[[httpx.Request], httpx.Response]


def ndjson_handler(*lines: bytes, status_code: int = 200) -> Handler:
    """Handler that streams ``lines`` as the response body."""

    def handler(request: httpx.Request) -> httpx.Response:
        async def body() -> AsyncGenerator[bytes, None]:
            for line in lines:
                yield line

        return httpx.Response(status_code, content=body())

    return handler


def make_ollama_client(handler: Handler) -> OllamaClient:
    return OllamaClient(OLLAMA_TEST_URL, transport=httpx.MockTransport(handler))
