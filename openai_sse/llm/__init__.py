"""
OpenAI-compatible API integration.

This package provides:
- Callback-based and iterator-based event-stream consumption
- Typed wire models for streamed chat completions and assistant runs
- One-shot REST resources over a shared httpx client
- A small error hierarchy for transport, decode and API failures
"""

from __future__ import annotations

from .client import OpenAIClient
from .exceptions import (
    APIError,
    DecodeError,
    OpenAIError,
    StreamCancelledError,
    StreamError,
    TransportError,
    UnexpectedCloseError,
)
from .models import (
    ChatCompletionChunk,
    ChoiceDelta,
    ChunkChoice,
    RunStatus,
    StreamRequest,
    ThreadRun,
)
from .streaming import SessionState, StreamSession

__all__ = [
    # Errors
    "APIError",
    # Models
    "ChatCompletionChunk",
    "ChoiceDelta",
    "ChunkChoice",
    "DecodeError",
    # Client
    "OpenAIClient",
    "OpenAIError",
    "RunStatus",
    "SessionState",
    "StreamCancelledError",
    "StreamError",
    "StreamRequest",
    "StreamSession",
    "ThreadRun",
    "TransportError",
    "UnexpectedCloseError",
]
