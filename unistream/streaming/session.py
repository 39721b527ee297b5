"""
unistream - Stream Session

Per-call mutable state owned by one StreamTransport.execute() call.
"""

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from .scanner import FrameScanner
from ..core.errors import UniStreamError


class TransportState(str, Enum):
    """Lifecycle of one streaming call."""
    IDLE = "idle"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset({
    TransportState.COMPLETED,
    TransportState.FAILED,
    TransportState.CANCELLED,
})

_ALLOWED_TRANSITIONS: Dict[TransportState, FrozenSet[TransportState]] = {
    TransportState.IDLE: frozenset({
        TransportState.CONNECTING,
        TransportState.FAILED,
        TransportState.CANCELLED,
    }),
    TransportState.CONNECTING: frozenset({
        TransportState.STREAMING,
        TransportState.FAILED,
        TransportState.CANCELLED,
    }),
    TransportState.STREAMING: frozenset({
        TransportState.FINALIZING,
        TransportState.FAILED,
        TransportState.CANCELLED,
    }),
    TransportState.FINALIZING: frozenset({
        TransportState.COMPLETED,
        TransportState.FAILED,
        TransportState.CANCELLED,
    }),
    TransportState.COMPLETED: frozenset(),
    TransportState.FAILED: frozenset(),
    TransportState.CANCELLED: frozenset(),
}


def generate_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:16]}"


@dataclass
class StreamSession:
    """
    State for one streaming call.

    The scanner holds the decode buffer, so sessions never share framing
    state. Content is append-only.
    """
    provider: str
    model: str
    scanner: FrameScanner
    request_id: str = field(default_factory=generate_request_id)
    state: TransportState = TransportState.IDLE
    chunks: List[str] = field(default_factory=list)
    chunks_sent: int = 0
    terminal_sent: bool = False
    error: Optional[UniStreamError] = None
    failed_while_finalizing: bool = False
    started_at: float = field(default_factory=time.monotonic)
    first_chunk_at: Optional[float] = None
    history: List[TransportState] = field(default_factory=list)

    @property
    def accumulated_content(self) -> str:
        return "".join(self.chunks)

    @property
    def content_started(self) -> bool:
        return self.chunks_sent > 0

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at

    def transition(self, new_state: TransportState):
        """Move to a new state; illegal moves are programming errors."""
        if new_state not in _ALLOWED_TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Illegal stream state transition {self.state.value} -> {new_state.value}"
            )
        self.history.append(self.state)
        self.state = new_state

    def append(self, text: str):
        if self.first_chunk_at is None:
            self.first_chunk_at = time.monotonic()
        self.chunks.append(text)
        self.chunks_sent += 1

    @property
    def time_to_first_chunk(self) -> Optional[float]:
        if self.first_chunk_at is None:
            return None
        return self.first_chunk_at - self.started_at


@dataclass(frozen=True)
class StreamResult:
    """Outcome of one StreamTransport.execute() call."""
    request_id: str
    provider: str
    model: str
    state: TransportState
    content: str
    chunks: int
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.state == TransportState.COMPLETED

    @property
    def cancelled(self) -> bool:
        return self.state == TransportState.CANCELLED

    @classmethod
    def from_session(cls, session: StreamSession) -> "StreamResult":
        return cls(
            request_id=session.request_id,
            provider=session.provider,
            model=session.model,
            state=session.state,
            content=session.accumulated_content,
            chunks=session.chunks_sent,
            error=session.error.message if session.error else None,
        )
