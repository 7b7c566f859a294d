"""HTTP client for the Ollama ``/api/generate`` endpoint."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx

from services.inference.exceptions import (
    InferenceConnectionError,
    InferenceHTTPError,
    ModelError,
    connection_guidance,
)


logger = logging.getLogger(__name__)

GENERATE_PATH = "/api/generate"


async def iter_lines(chunks: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
    """Split a byte stream into complete lines.

    Partial lines are buffered across chunks. A final line without a trailing
    newline is yielded when the stream ends.
    """
    buffer = b""
    async for chunk in chunks:
        if not chunk:
            continue
        buffer += chunk
        while b"\n" in buffer:
            line, buffer = buffer.split(b"\n", 1)
            yield line
    if buffer:
        yield buffer


class OllamaClient:
    """Thin async wrapper around a local Ollama server."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = httpx.Timeout(timeout_seconds, connect=10.0)
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self._transport
        )

    @staticmethod
    def _payload(prompt: str, model: str, stream: bool) -> dict[str, Any]:
        return {"model": model, "prompt": prompt, "stream": stream}

    async def generate(self, prompt: str, model: str) -> str:
        """Run a non-streaming generation and return the full response text.

        Raises:
            InferenceConnectionError: If the server cannot be reached.
            InferenceHTTPError: On a non-2xx response.
            ModelError: If the body carries an ``error`` field or no text.
        """
        try:
            async with self._client() as client:
                response = await client.post(
                    GENERATE_PATH, json=self._payload(prompt, model, stream=False)
                )
        except httpx.RequestError as e:
            logger.warning("Ollama request to %s failed: %s", self.base_url, e)
            raise InferenceConnectionError(connection_guidance(model, str(e))) from e

        if response.status_code >= 400:
            raise InferenceHTTPError(response.status_code, response.text.strip())

        try:
            data = response.json()
        except json.JSONDecodeError as e:
            raise ModelError(f"Invalid JSON from model server: {e}") from e
        if not isinstance(data, dict):
            raise ModelError("Unexpected response shape from model server")
        if data.get("error"):
            raise ModelError(str(data["error"]))
        return str(data.get("response") or "")

    @asynccontextmanager
    async def stream(self, prompt: str, model: str) -> AsyncIterator[AsyncIterator[bytes]]:
        """Open a streaming generation; yields an iterator of raw NDJSON lines.

        The HTTP status is checked before the context body runs.

        Raises:
            InferenceConnectionError: If the server cannot be reached, or the
                connection drops while reading.
            InferenceHTTPError: On a non-2xx response.
        """
        connected = False
        try:
            async with self._client() as client:
                async with client.stream(
                    "POST", GENERATE_PATH, json=self._payload(prompt, model, stream=True)
                ) as response:
                    if response.status_code >= 400:
                        raw = await response.aread()
                        body = raw.decode("utf-8", "replace").strip()
                        raise InferenceHTTPError(response.status_code, body)
                    connected = True
                    yield iter_lines(response.aiter_bytes())
        except httpx.RequestError as e:
            logger.warning("Ollama stream to %s failed: %s", self.base_url, e)
            if connected:
                raise InferenceConnectionError(
                    f"Connection to the inference server was lost: {e}"
                ) from e
            raise InferenceConnectionError(connection_guidance(model, str(e))) from e
