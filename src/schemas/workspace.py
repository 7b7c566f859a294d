"""Schemas for the workspace API (current document and chat transcript)."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from services.documents import DocumentKind, DocumentSnapshot
from services.inference.transcript import ChatTranscript, ChatTurn, TurnStatus


class DocumentOut(BaseModel):
    """The current document as seen by the client."""

    version: int
    source_url: str
    kind: DocumentKind
    is_error: bool
    title: str | None = None
    content: str

    @classmethod
    def from_snapshot(cls, snapshot: DocumentSnapshot) -> DocumentOut:
        doc = snapshot.document
        return cls(
            version=snapshot.version,
            source_url=doc.source_url,
            kind=doc.kind,
            is_error=doc.is_error,
            title=doc.title,
            content=doc.raw_content,
        )


class LoadUrlRequest(BaseModel):
    """URL-bar input: a URL, a host name, or search words."""

    url: str = Field(..., min_length=1, max_length=2048)

    model_config = ConfigDict(extra="forbid")


class LoadPdfRequest(BaseModel):
    url: str = Field(..., min_length=1, max_length=2048)
    filename: str | None = Field(default=None, max_length=255)

    model_config = ConfigDict(extra="forbid")


class NavigateMessage(BaseModel):
    """Message posted by the sandboxed document frame on a link click."""

    type: Literal["navigate"]
    url: str = Field(..., min_length=1, max_length=2048)


class ChatTurnOut(BaseModel):
    index: int
    user_text: str
    ai_text: str
    status: TurnStatus
    error_text: str | None = None
    display_text: str

    @classmethod
    def from_turn(cls, turn: ChatTurn) -> ChatTurnOut:
        return cls(
            index=turn.index,
            user_text=turn.user_text,
            ai_text=turn.ai_text,
            status=turn.status,
            error_text=turn.error_text,
            display_text=turn.display_text,
        )


class TranscriptOut(BaseModel):
    turns: list[ChatTurnOut]
    active: bool

    @classmethod
    def from_transcript(cls, transcript: ChatTranscript) -> TranscriptOut:
        return cls(
            turns=[ChatTurnOut.from_turn(t) for t in transcript.turns],
            active=transcript.active_turn is not None,
        )


class StopOut(BaseModel):
    stopped: bool


class SummaryOut(BaseModel):
    text: str
    model: str
    generated: bool
