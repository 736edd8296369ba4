"""Streaming client for OpenAI-compatible APIs."""

from __future__ import annotations

from .config import Configuration
from .llm import (
    APIError,
    ChatCompletionChunk,
    DecodeError,
    OpenAIClient,
    OpenAIError,
    SessionState,
    StreamCancelledError,
    StreamError,
    StreamRequest,
    StreamSession,
    ThreadRun,
    TransportError,
    UnexpectedCloseError,
)

__all__ = [
    "APIError",
    "ChatCompletionChunk",
    "Configuration",
    "DecodeError",
    "OpenAIClient",
    "OpenAIError",
    "SessionState",
    "StreamCancelledError",
    "StreamError",
    "StreamRequest",
    "StreamSession",
    "ThreadRun",
    "TransportError",
    "UnexpectedCloseError",
]
