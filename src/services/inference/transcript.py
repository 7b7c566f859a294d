"""Chat transcript state.

The transcript is append-only apart from the last turn's ``ai_text`` while
that turn is STREAMING. At most one turn is non-terminal at any time.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from core.exceptions import StreamBusyError


class TurnStatus(StrEnum):
    PENDING = "pending"
    STREAMING = "streaming"
    COMPLETE = "complete"
    ABORTED = "aborted"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in {TurnStatus.COMPLETE, TurnStatus.ABORTED, TurnStatus.FAILED}


@dataclass
class ChatTurn:
    index: int
    user_text: str
    ai_text: str = ""
    status: TurnStatus = TurnStatus.PENDING
    error_text: str | None = None

    @property
    def display_text(self) -> str:
        """What the UI shows for the AI side of this turn."""
        if self.status is TurnStatus.FAILED and self.error_text:
            if self.ai_text:
                return f"{self.ai_text}\n\n{self.error_text}"
            return self.error_text
        if self.status is TurnStatus.ABORTED:
            return f"{self.ai_text}\n\n*(stopped)*" if self.ai_text else "*(stopped)*"
        return self.ai_text


class ChatTranscript:
    def __init__(self) -> None:
        self._turns: list[ChatTurn] = []

    @property
    def turns(self) -> tuple[ChatTurn, ...]:
        return tuple(self._turns)

    @property
    def active_turn(self) -> ChatTurn | None:
        if self._turns and not self._turns[-1].status.is_terminal:
            return self._turns[-1]
        return None

    def begin_turn(self, user_text: str) -> ChatTurn:
        """Append a PENDING turn.

        Raises:
            StreamBusyError: If the previous turn is still PENDING or
                STREAMING. The previous turn is left untouched.
        """
        if self.active_turn is not None:
            raise StreamBusyError("A response is still being generated")
        turn = ChatTurn(index=len(self._turns), user_text=user_text)
        self._turns.append(turn)
        return turn

    def mark_streaming(self, turn: ChatTurn) -> bool:
        if turn.status is not TurnStatus.PENDING:
            return False
        turn.status = TurnStatus.STREAMING
        return True

    def append_fragment(self, turn: ChatTurn, fragment: str) -> bool:
        """Append to ``turn``; refused once the turn left STREAMING."""
        if turn.status is not TurnStatus.STREAMING:
            return False
        turn.ai_text += fragment
        return True

    def finish(
        self, turn: ChatTurn, status: TurnStatus, error_text: str | None = None
    ) -> bool:
        """Move ``turn`` to a terminal status. The first transition wins."""
        if turn.status.is_terminal or not status.is_terminal:
            return False
        turn.status = status
        turn.error_text = error_text
        return True
