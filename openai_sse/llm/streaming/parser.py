"""
Event-stream frame decoding and payload interpretation.

The decoder is schema-agnostic: it only turns text into frames and frames into
``StreamEvent`` values. Domain decoding happens in the session.
"""

from __future__ import annotations

import json
import re
from collections.abc import AsyncGenerator

import httpx

from ..exceptions import TransportError
from .models import (
    DONE_SENTINEL,
    DataEvent,
    MalformedPayloadEvent,
    SSEFrame,
    StreamEvent,
    TerminalEvent,
)

_LINE_END = re.compile(r"\r\n|\r|\n")


class SSEDecoder:
    """Incremental text/event-stream decoder.

    Feed it text as it arrives; it returns every frame completed by that text.
    Partial lines and partial frames are buffered across calls.
    """

    def __init__(self) -> None:
        self._buffer = ""
        self._data_lines: list[str] = []
        self._event: str | None = None
        self._last_id: str | None = None

    @property
    def last_event_id(self) -> str | None:
        return self._last_id

    def feed(self, text: str) -> list[SSEFrame]:
        """Consume a chunk of text and return the frames it completes."""
        self._buffer += text
        frames: list[SSEFrame] = []

        while match := _LINE_END.search(self._buffer):
            # A trailing "\r" may be the first half of "\r\n"
            if match.group() == "\r" and match.end() == len(self._buffer):
                break
            line = self._buffer[:match.start()]
            self._buffer = self._buffer[match.end():]
            frame = self._process_line(line)
            if frame is not None:
                frames.append(frame)

        return frames

    def flush(self) -> list[SSEFrame]:
        """Emit whatever is pending once the underlying stream has ended."""
        frames: list[SSEFrame] = []
        if self._buffer:
            line = self._buffer.rstrip("\r")
            self._buffer = ""
            frame = self._process_line(line)
            if frame is not None:
                frames.append(frame)

        frame = self._dispatch()
        if frame is not None:
            frames.append(frame)
        return frames

    def _process_line(self, line: str) -> SSEFrame | None:
        if not line:
            return self._dispatch()

        if line.startswith(":"):
            return None

        field, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if field == "data":
            self._data_lines.append(value)
        elif field == "event":
            self._event = value
        elif field == "id":
            if "\0" not in value:
                self._last_id = value
        # "retry" and unknown fields are ignored

        return None

    def _dispatch(self) -> SSEFrame | None:
        data_lines, event = self._data_lines, self._event
        self._data_lines = []
        self._event = None

        if not data_lines:
            return None

        return SSEFrame(
            data="\n".join(data_lines),
            event=event or "message",
            id=self._last_id,
        )


def interpret_payload(payload: str) -> StreamEvent | None:
    """Classify one frame payload.

    Returns None for whitespace-only padding.
    """
    stripped = payload.strip()
    if not stripped:
        return None

    if stripped == DONE_SENTINEL:
        return TerminalEvent()

    try:
        value = json.loads(payload)
    except (json.JSONDecodeError, RecursionError) as e:
        return MalformedPayloadEvent(raw=payload, cause=str(e))

    return DataEvent(payload=payload, value=value)


async def iter_stream_events(
    response: httpx.Response,
    decoder: SSEDecoder | None = None,
) -> AsyncGenerator[StreamEvent]:
    """
    Yield interpreted events from an open streaming response in arrival order.

    Ends normally when the body is exhausted (the caller decides whether that
    was expected). Read failures are raised as ``TransportError``.
    """
    decoder = decoder or SSEDecoder()

    try:
        async for text in response.aiter_text():
            for frame in decoder.feed(text):
                event = interpret_payload(frame.data)
                if event is not None:
                    yield event
    except (httpx.HTTPError, httpx.StreamError) as e:
        raise TransportError(f"Stream error: {e}") from e

    for frame in decoder.flush():
        event = interpret_payload(frame.data)
        if event is not None:
            yield event
