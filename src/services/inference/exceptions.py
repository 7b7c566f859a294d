"""Domain exceptions for local model inference.

Streaming failures are caught by ``StreamSession`` and recorded on the turn;
the non-streaming summary path lets them reach the API layer, which maps them
to 502 responses.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class InferenceError(Exception):
    """Base class for inference domain errors."""

    message: str
    error_code: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.message


def connection_guidance(model: str, detail: str) -> str:
    return (
        "❌ Could not connect to the Ollama API.\n"
        f"Details: {detail}\n\n"
        "Please make sure:\n"
        "1. Ollama is running: `ollama serve`\n"
        f"2. The model has been pulled: `ollama pull {model}`"
    )


class InferenceConnectionError(InferenceError):
    def __init__(self, message: str = "Could not reach the inference server") -> None:
        super().__init__(message=message, error_code="connection_failed")


class InferenceHTTPError(InferenceError):
    def __init__(self, status_code: int, body: str = "") -> None:
        detail = f": {body}" if body else ""
        super().__init__(
            message=f"Inference server returned HTTP {status_code}{detail}",
            error_code="http_error",
        )
        self.status_code = status_code
        self.body = body


class StreamParseError(InferenceError):
    def __init__(self, raw_line: str) -> None:
        super().__init__(
            message=f"Malformed line in model stream: {raw_line}",
            error_code="parse_failed",
        )
        self.raw_line = raw_line


class ModelError(InferenceError):
    """The model server reported an error inside the response body."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, error_code="model_error")
