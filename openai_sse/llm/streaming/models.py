"""
Streaming-specific dataclasses: frames, interpreted events and session state.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

DONE_SENTINEL = "[DONE]"


class SessionState(Enum):
    """Lifecycle of one streaming request. CLOSED is absorbing."""
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True)
class SSEFrame:
    """One dispatched event-stream frame."""
    data: str
    event: str = "message"
    id: str | None = None


@dataclass(frozen=True)
class DataEvent:
    """A payload that parsed as JSON; ``value`` is the generic parsed document."""
    payload: str
    value: Any


@dataclass(frozen=True)
class TerminalEvent:
    """The server sent the end-of-stream sentinel."""
    pass


@dataclass(frozen=True)
class MalformedPayloadEvent:
    """A payload that is neither the sentinel nor valid JSON."""
    raw: str
    cause: str


StreamEvent = DataEvent | TerminalEvent | MalformedPayloadEvent


@dataclass
class StreamingStats:
    """Counters for one session."""
    frames_received: int = 0
    messages_dispatched: int = 0
    started_at: float | None = None
    opened_at: float | None = None
    closed_at: float | None = None

    @property
    def duration(self) -> float:
        """Seconds between connect and close (0.0 while incomplete)."""
        if self.started_at is None or self.closed_at is None:
            return 0.0
        return self.closed_at - self.started_at

    def as_dict(self) -> dict[str, Any]:
        return {
            "frames_received": self.frames_received,
            "messages_dispatched": self.messages_dispatched,
            "duration": self.duration,
        }
