"""Schemas for chat SSE streaming."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


MAX_SSE_EVENT_BYTES: int = 16_384


class ChatSseEvent(BaseModel):
    """Canonical SSE envelope for chat streaming.

    Deltas carry only the new fragment; clients concatenate them. Terminal
    events carry the final status and text length, never the text itself.
    """

    event: Literal[
        "status",
        "message.delta",
        "message.complete",
        "message.aborted",
        "error",
        "done",
    ]
    turn_index: int
    data: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")

    def to_sse(self) -> str:
        """Serialize event to SSE format with size validation."""
        payload = self.model_dump_json()
        if len(payload.encode("utf-8")) > MAX_SSE_EVENT_BYTES:
            raise ValueError(
                "SSE payload exceeded MAX_SSE_EVENT_BYTES; send deltas instead of "
                "whole documents."
            )
        return f"data: {payload}\n\n"

    @classmethod
    def error(cls, turn_index: int, message: str) -> ChatSseEvent:
        """Build an error event, shortening ``message`` until the event fits."""
        event = cls(event="error", turn_index=turn_index, data={"message": message})
        size = len(event.model_dump_json().encode("utf-8"))
        while size > MAX_SSE_EVENT_BYTES and message:
            # Escaped control characters take up to 6 bytes each
            keep = len(message) * MAX_SSE_EVENT_BYTES // size - 1
            message = message[: max(0, keep)]
            event = cls(event="error", turn_index=turn_index, data={"message": message})
            size = len(event.model_dump_json().encode("utf-8"))
        return event


class ChatStreamRequest(BaseModel):
    """Request payload for streaming a chat response."""

    content: str = Field(..., min_length=1, max_length=4000)

    model_config = ConfigDict(extra="forbid")
