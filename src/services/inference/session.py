"""Streaming query session.

A ``StreamSession`` owns exactly one in-flight ``/api/generate`` request and
the transcript turn it fills:

    IDLE -> REQUESTING -> STREAMING -> COMPLETE | ABORTED | FAILED

Every fragment is appended to the owned turn and handed to the listener
callback. ``stop()`` marks the turn ABORTED immediately and cancels the task
blocked on the socket read; nothing is appended to the turn after that.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from services.inference.client import OllamaClient
from services.inference.exceptions import InferenceError, ModelError, StreamParseError
from services.inference.transcript import ChatTranscript, ChatTurn, TurnStatus


logger = logging.getLogger(__name__)


class StreamState(StrEnum):
    IDLE = "idle"
    REQUESTING = "requesting"
    STREAMING = "streaming"
    COMPLETE = "complete"
    ABORTED = "aborted"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in {StreamState.COMPLETE, StreamState.ABORTED, StreamState.FAILED}


_TERMINAL_TURN_STATUS = {
    StreamState.COMPLETE: TurnStatus.COMPLETE,
    StreamState.ABORTED: TurnStatus.ABORTED,
    StreamState.FAILED: TurnStatus.FAILED,
}


@dataclass(frozen=True, slots=True)
class StreamUpdate:
    """A change pushed to the listener: a new fragment or a state change."""

    turn_index: int
    state: StreamState
    delta: str | None = None
    error_text: str | None = None


StreamListener = Callable[[StreamUpdate], None]


class StreamSession:
    def __init__(
        self,
        client: OllamaClient,
        transcript: ChatTranscript,
        turn: ChatTurn,
        *,
        prompt: str,
        model: str,
        listener: StreamListener | None = None,
    ) -> None:
        self.client = client
        self.transcript = transcript
        self.turn = turn
        self.prompt = prompt
        self.model = model
        self.listener = listener
        self.state = StreamState.IDLE
        self._stopped = False
        self._task: asyncio.Task[TurnStatus] | None = None

    @property
    def finished(self) -> bool:
        return self.state.is_terminal

    def start(self) -> asyncio.Task[TurnStatus]:
        """Run the session on its own task."""
        if self._task is None:
            self._task = asyncio.create_task(
                self.run(), name=f"stream-session-{self.turn.index}"
            )
        return self._task

    async def wait(self) -> TurnStatus:
        if self._task is not None:
            # asyncio.wait does not re-raise the task's cancellation
            await asyncio.wait({self._task})
        return self.turn.status

    def stop(self) -> bool:
        """Abort the stream. Returns False if it had already finished."""
        if self._stopped or self.state.is_terminal:
            return False
        self._stopped = True
        self._finish(StreamState.ABORTED)
        task = self._task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        logger.info("Stream for turn %d stopped by user", self.turn.index)
        return True

    async def run(self) -> TurnStatus:
        self._set_state(StreamState.REQUESTING)
        try:
            async with self.client.stream(self.prompt, self.model) as lines:
                if self._stopped:
                    return self.turn.status
                self.transcript.mark_streaming(self.turn)
                self._set_state(StreamState.STREAMING)
                async for raw in lines:
                    if self._stopped:
                        break
                    if self._handle_line(raw):
                        self._finish(StreamState.COMPLETE)
                        break
                else:
                    # Stream ended without a done record
                    self._finish(StreamState.COMPLETE)
        except asyncio.CancelledError:
            self._finish(StreamState.ABORTED)
            if not self._stopped:
                raise
        except InferenceError as e:
            logger.warning(
                "Stream for turn %d failed (%s): %s",
                self.turn.index,
                e.error_code,
                e.message,
            )
            self._finish(StreamState.FAILED, e.message)
        except Exception:
            logger.exception("Unexpected error in stream for turn %d", self.turn.index)
            self._finish(StreamState.FAILED, "❌ Unexpected error while generating")
        return self.turn.status

    def _handle_line(self, raw: bytes) -> bool:
        """Apply one NDJSON line. Returns True on the ``done`` record.

        Raises:
            StreamParseError: If the line is not a JSON object.
            ModelError: If the record carries an ``error`` field.
        """
        text = raw.decode("utf-8", "replace").strip()
        if not text:
            return False
        try:
            record = json.loads(text)
        except json.JSONDecodeError as e:
            raise StreamParseError(text) from e
        if not isinstance(record, dict):
            raise StreamParseError(text)
        if record.get("error"):
            raise ModelError(str(record["error"]))

        fragment = record.get("response")
        if isinstance(fragment, str) and fragment:
            if self.transcript.append_fragment(self.turn, fragment):
                self._notify(StreamUpdate(self.turn.index, self.state, delta=fragment))
        return bool(record.get("done"))

    def _set_state(self, state: StreamState) -> None:
        if self.state.is_terminal:
            return
        self.state = state
        self._notify(StreamUpdate(self.turn.index, state))

    def _finish(self, state: StreamState, error_text: str | None = None) -> None:
        if self.state.is_terminal:
            return
        self.transcript.finish(self.turn, _TERMINAL_TURN_STATUS[state], error_text)
        self.state = state
        self._notify(StreamUpdate(self.turn.index, state, error_text=error_text))

    def _notify(self, update: StreamUpdate) -> None:
        if self.listener is not None:
            self.listener(update)
