"""
Error hierarchy for API and streaming operations.

This module provides errors with enough context to diagnose a failure:
- HTTP status and response body for rejected requests
- Operation and category for one-shot REST calls
- Raw payload and parser message for corrupt stream frames
"""

from __future__ import annotations

from typing import Any


class OpenAIError(Exception):
    """Base error with optional HTTP context."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_data: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_data = response_data or {}


class APIError(OpenAIError):
    """A one-shot REST request failed."""

    def __init__(
        self,
        message: str,
        operation: str = "unknown",
        category: str = "unknown_error",
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.operation = operation
        self.category = category


class StreamError(OpenAIError):
    """Streaming-specific errors."""
    pass


class TransportError(StreamError):
    """Connection could not be established or dropped mid-stream."""
    pass


class UnexpectedCloseError(TransportError):
    """The server closed the stream without sending the terminal sentinel."""

    def __init__(self, message: str = "Stream closed before [DONE] sentinel"):
        super().__init__(message)


class DecodeError(StreamError):
    """A frame payload could not be decoded."""

    def __init__(self, raw_payload: str, cause: str):
        super().__init__(f"JSON Parse on {raw_payload} with error {cause}")
        self.raw_payload = raw_payload
        self.cause = cause


class StreamCancelledError(StreamError):
    """The caller cancelled an in-flight stream."""

    def __init__(self, message: str = "Stream cancelled by caller"):
        super().__init__(message)
