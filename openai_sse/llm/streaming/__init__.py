"""
Streaming support: event-stream decoding, payload interpretation,
callback routing and the per-request session state machine.
"""

from __future__ import annotations

from .models import (
    DONE_SENTINEL,
    DataEvent,
    MalformedPayloadEvent,
    SessionState,
    SSEFrame,
    StreamEvent,
    StreamingStats,
    TerminalEvent,
)
from .parser import SSEDecoder, interpret_payload, iter_stream_events
from .router import CallbackRouter
from .session import MessageDecoder, StreamSession, identity_decoder, open_stream

__all__ = [
    "DONE_SENTINEL",
    "CallbackRouter",
    "DataEvent",
    "MalformedPayloadEvent",
    "MessageDecoder",
    "SSEDecoder",
    "SSEFrame",
    "SessionState",
    "StreamEvent",
    "StreamSession",
    "StreamingStats",
    "TerminalEvent",
    "identity_decoder",
    "interpret_payload",
    "iter_stream_events",
    "open_stream",
]
