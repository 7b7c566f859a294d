"""Local model inference: Ollama client, transcript and streaming sessions."""

from .client import OllamaClient
from .exceptions import (
    InferenceConnectionError,
    InferenceError,
    InferenceHTTPError,
    ModelError,
    StreamParseError,
)
from .session import StreamSession, StreamState, StreamUpdate
from .transcript import ChatTranscript, ChatTurn, TurnStatus


__all__ = [
    "ChatTranscript",
    "ChatTurn",
    "InferenceConnectionError",
    "InferenceError",
    "InferenceHTTPError",
    "ModelError",
    "OllamaClient",
    "StreamParseError",
    "StreamSession",
    "StreamState",
    "StreamUpdate",
    "TurnStatus",
]
