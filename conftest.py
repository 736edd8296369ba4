"""
Shared fixtures: a fake event-stream server on httpx.MockTransport and a
recorder for session callbacks.
"""

import asyncio
import json

import httpx
import pytest

from openai_sse.llm.client import OpenAIClient

SSE_CONTENT_TYPE = "text/event-stream; charset=utf-8"
BASE_URL = "https://api.test/v1"


class ChunkedByteStream(httpx.AsyncByteStream):
    """Response body that yields each chunk as a separate read."""

    def __init__(self, chunks, error=None):
        self.chunks = chunks
        self.error = error
        self.close_calls = 0

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk.encode("utf-8") if isinstance(chunk, str) else chunk
            await asyncio.sleep(0)
        if self.error is not None:
            raise self.error

    async def aclose(self):
        self.close_calls += 1


class FakeSSEServer:
    """MockTransport handler replaying a fixed sequence of body chunks."""

    def __init__(
        self,
        chunks,
        *,
        status_code=200,
        content_type=SSE_CONTENT_TYPE,
        error=None,
        connect_error=None,
    ):
        self.chunks = chunks
        self.status_code = status_code
        self.content_type = content_type
        self.error = error
        self.connect_error = connect_error
        self.requests: list[httpx.Request] = []
        self.streams: list[ChunkedByteStream] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.connect_error is not None:
            raise self.connect_error
        stream = ChunkedByteStream(self.chunks, self.error)
        self.streams.append(stream)
        return httpx.Response(
            self.status_code,
            headers={"content-type": self.content_type},
            stream=stream,
        )

    @property
    def last_body(self) -> dict:
        return json.loads(self.requests[-1].content)


class CallbackRecorder:
    """Records every callback invocation in order."""

    def __init__(self):
        self.events = []

    def on_open(self):
        self.events.append(("open", None))

    def on_data(self, message):
        self.events.append(("data", message))

    def on_error(self, error):
        self.events.append(("error", error))

    def on_done(self):
        self.events.append(("done", None))

    @property
    def kinds(self) -> list[str]:
        return [kind for kind, _ in self.events]

    @property
    def data(self) -> list:
        return [value for kind, value in self.events if kind == "data"]

    @property
    def errors(self) -> list:
        return [value for kind, value in self.events if kind == "error"]

    def callbacks(self) -> dict:
        return {
            "on_open": self.on_open,
            "on_error": self.on_error,
            "on_done": self.on_done,
        }


@pytest.fixture
def recorder():
    return CallbackRecorder()


@pytest.fixture
def sse_server():
    """Factory for FakeSSEServer instances."""
    return FakeSSEServer


@pytest.fixture
def make_client():
    """Factory building an OpenAIClient whose transport is the given handler."""
    def factory(handler, **kwargs):
        return OpenAIClient(
            "sk-test",
            BASE_URL,
            transport=httpx.MockTransport(handler),
            **kwargs,
        )
    return factory
