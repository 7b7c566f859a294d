"""Workspace endpoints: the current document and the chat transcript.

All handlers are ``async def``: workspace state lives on the event loop and
must not be touched from the threadpool.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter
from fastapi.responses import HTMLResponse, StreamingResponse

from dependencies.workspace import WorkspaceDep
from schemas.api import ApiResponse
from schemas.chat_streaming import ChatSseEvent, ChatStreamRequest
from schemas.workspace import (
    DocumentOut,
    LoadPdfRequest,
    LoadUrlRequest,
    NavigateMessage,
    StopOut,
    SummaryOut,
    TranscriptOut,
)
from services.inference.session import StreamSession, StreamState, StreamUpdate


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workspace", tags=["workspace"])

# Longest error text shown in an SSE error event
MAX_SSE_ERROR_CHARS = 4000


@router.get("/document", response_model=ApiResponse[DocumentOut])
async def get_document(workspace: WorkspaceDep) -> ApiResponse[DocumentOut]:
    return ApiResponse(data=DocumentOut.from_snapshot(workspace.snapshot()))


@router.post("/document", response_model=ApiResponse[DocumentOut])
async def load_document(
    payload: LoadUrlRequest, workspace: WorkspaceDep
) -> ApiResponse[DocumentOut]:
    """Load URL-bar input: a page URL, a PDF URL, or search words."""
    snapshot = await workspace.navigate(payload.url)
    message = (
        "Page could not be loaded" if snapshot.document.is_error else "Document loaded"
    )
    return ApiResponse(data=DocumentOut.from_snapshot(snapshot), message=message)


@router.post("/document/pdf", response_model=ApiResponse[DocumentOut])
async def load_pdf(
    payload: LoadPdfRequest, workspace: WorkspaceDep
) -> ApiResponse[DocumentOut]:
    snapshot = workspace.load_pdf(payload.url, payload.filename)
    return ApiResponse(data=DocumentOut.from_snapshot(snapshot), message="PDF loaded")


@router.delete("/document", response_model=ApiResponse[DocumentOut])
async def clear_document(workspace: WorkspaceDep) -> ApiResponse[DocumentOut]:
    snapshot = workspace.clear_document()
    return ApiResponse(data=DocumentOut.from_snapshot(snapshot), message="View cleared")


@router.get("/document/view", response_class=HTMLResponse)
async def view_document(workspace: WorkspaceDep) -> HTMLResponse:
    """Host page presenting the current document in isolation."""
    return HTMLResponse(
        workspace.render(),
        headers={
            "Content-Security-Policy": workspace.renderer.host_csp(),
            "X-Content-Type-Options": "nosniff",
            "Referrer-Policy": "no-referrer",
        },
    )


@router.post("/navigate", response_model=ApiResponse[DocumentOut])
async def navigate(
    message: NavigateMessage, workspace: WorkspaceDep
) -> ApiResponse[DocumentOut]:
    """Follow a link clicked inside the sandboxed document."""
    snapshot = await workspace.handle_navigate_message(message.url)
    return ApiResponse(data=DocumentOut.from_snapshot(snapshot), message="Navigated")


@router.get("/transcript", response_model=ApiResponse[TranscriptOut])
async def get_transcript(workspace: WorkspaceDep) -> ApiResponse[TranscriptOut]:
    return ApiResponse(data=TranscriptOut.from_transcript(workspace.transcript))


def _event_for_update(update: StreamUpdate, session: StreamSession) -> ChatSseEvent:
    turn = session.turn
    if update.delta is not None:
        return ChatSseEvent(
            event="message.delta",
            turn_index=update.turn_index,
            data={"delta": update.delta},
        )
    if update.state is StreamState.COMPLETE:
        return ChatSseEvent(
            event="message.complete",
            turn_index=update.turn_index,
            data={"status": turn.status.value, "length": len(turn.ai_text)},
        )
    if update.state is StreamState.ABORTED:
        return ChatSseEvent(
            event="message.aborted",
            turn_index=update.turn_index,
            data={"status": turn.status.value, "length": len(turn.ai_text)},
        )
    if update.state is StreamState.FAILED:
        error_text = update.error_text or "Generation failed"
        return ChatSseEvent.error(update.turn_index, error_text[:MAX_SSE_ERROR_CHARS])
    return ChatSseEvent(
        event="status",
        turn_index=update.turn_index,
        data={"status": update.state.value},
    )


@router.post("/messages/stream", response_class=StreamingResponse)
async def stream_message(
    payload: ChatStreamRequest, workspace: WorkspaceDep
) -> StreamingResponse:
    """Stream the answer to a chat message as SSE events.

    Rejected with 409 while the previous turn is still being generated.
    """
    updates: asyncio.Queue[StreamUpdate] = asyncio.Queue()
    session = workspace.start_chat(payload.content, listener=updates.put_nowait)
    turn_index = session.turn.index

    async def event_stream() -> AsyncGenerator[str, None]:
        try:
            while True:
                update = await updates.get()
                yield _event_for_update(update, session).to_sse()
                if update.state.is_terminal:
                    break
        finally:
            if not session.finished:
                # Client went away mid-stream
                logger.info("SSE client disconnected; stopping turn %d", turn_index)
                session.stop()
        yield ChatSseEvent(event="done", turn_index=turn_index).to_sse()

    return StreamingResponse(event_stream(), media_type="text/event-stream")


@router.post("/messages/stop", response_model=ApiResponse[StopOut])
async def stop_message(workspace: WorkspaceDep) -> ApiResponse[StopOut]:
    stopped = workspace.stop_chat()
    return ApiResponse(
        data=StopOut(stopped=stopped),
        message="Generation stopped" if stopped else "Nothing to stop",
    )


@router.post("/summary", response_model=ApiResponse[SummaryOut])
async def summarize(workspace: WorkspaceDep) -> ApiResponse[SummaryOut]:
    result = await workspace.summarize()
    return ApiResponse(
        data=SummaryOut(text=result.text, model=result.model, generated=result.generated)
    )
