"""
HTTP client for OpenAI-compatible APIs with callback-based streaming.

One shared ``httpx.AsyncClient`` serves every call; each streaming call gets
its own ``StreamSession`` and its own streamed response.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Mapping
from contextlib import aclosing
from typing import Any, TypeVar

import httpx

from ..config import Configuration
from .exceptions import DecodeError, UnexpectedCloseError
from .models import StreamRequest
from .resources import Beta, Chat, Files, Models, Moderations
from .streaming.models import MalformedPayloadEvent, TerminalEvent
from .streaming.parser import iter_stream_events
from .streaming.router import CallbackRouter, OnData, OnDone, OnError, OnOpen
from .streaming.session import (
    MessageDecoder,
    StreamSession,
    identity_decoder,
    open_stream,
)

T = TypeVar("T")

DEFAULT_TIMEOUT = httpx.Timeout(10.0, read=120.0)


class OpenAIClient:
    """
    OpenAI-compatible API client.

    Streaming endpoints deliver results through callbacks
    (``stream``/``astream``) or an async iterator (``iter_stream``).
    One-shot endpoints are exposed as resource namespaces mirroring the
    REST paths: ``models``, ``moderations``, ``chat``, ``files``, ``beta``.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        *,
        timeout: httpx.Timeout | float | None = None,
        limits: httpx.Limits | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        require_event_stream: bool = True,
        poll_interval: float = 1.0,
    ) -> None:
        if not api_key:
            raise ValueError("api_key must be a non-empty string")

        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.require_event_stream = require_event_stream
        self.poll_interval = poll_interval

        client_kwargs: dict[str, Any] = {
            "base_url": self.base_url,
            "headers": {"Authorization": f"Bearer {api_key}"},
            "timeout": timeout if timeout is not None else DEFAULT_TIMEOUT,
        }
        if limits is not None:
            client_kwargs["limits"] = limits
        if transport is not None:
            client_kwargs["transport"] = transport
        self.http: httpx.AsyncClient = httpx.AsyncClient(**client_kwargs)

        self.models = Models(self)
        self.moderations = Moderations(self)
        self.chat = Chat(self)
        self.files = Files(self)
        self.beta = Beta(self)

    @classmethod
    def from_config(
        cls,
        config: Configuration,
        **kwargs: Any,
    ) -> OpenAIClient:
        """Build a client from YAML/.env configuration."""
        http_config = config.get_http_client_config()
        streaming_config = config.get_streaming_config()

        timeout = httpx.Timeout(
            connect=http_config["connect_timeout"],
            read=http_config["read_timeout"],
            write=http_config["write_timeout"],
            pool=http_config["pool_timeout"],
        )
        limits = httpx.Limits(
            max_connections=http_config["max_connections"],
            max_keepalive_connections=http_config["max_keepalive"],
            keepalive_expiry=http_config["keepalive_expiry"],
        )
        return cls(
            config.api_key,
            config.base_url,
            timeout=timeout,
            limits=limits,
            require_event_stream=streaming_config["require_event_stream"],
            poll_interval=streaming_config["poll_interval"],
            **kwargs,
        )

    def build_stream_request(
        self,
        endpoint: str,
        body: Mapping[str, Any] | None = None,
        extra_headers: Mapping[str, str] | None = None,
    ) -> StreamRequest:
        return StreamRequest(
            endpoint=endpoint,
            api_key=self.api_key,
            params=body or {},
            extra_headers=extra_headers or {},
        )

    def create_session(
        self,
        endpoint: str,
        body: Mapping[str, Any] | None,
        on_data: OnData[T],
        *,
        on_open: OnOpen | None = None,
        on_error: OnError | None = None,
        on_done: OnDone | None = None,
        decoder: MessageDecoder[T] | None = None,
        extra_headers: Mapping[str, str] | None = None,
    ) -> StreamSession[T]:
        """Create an unstarted session for ``endpoint``."""
        router = CallbackRouter(
            on_data, on_open=on_open, on_error=on_error, on_done=on_done
        )
        return StreamSession(
            self.http,
            self.build_stream_request(endpoint, body, extra_headers),
            router,
            decoder,
            require_event_stream=self.require_event_stream,
        )

    def stream(
        self,
        endpoint: str,
        body: Mapping[str, Any] | None,
        on_data: OnData[T],
        *,
        on_open: OnOpen | None = None,
        on_error: OnError | None = None,
        on_done: OnDone | None = None,
        decoder: MessageDecoder[T] | None = None,
        extra_headers: Mapping[str, str] | None = None,
    ) -> StreamSession[T]:
        """
        Start streaming from ``endpoint`` and return immediately.

        Must be called from a running event loop. All results arrive through
        the callbacks; the returned session can be cancelled or awaited with
        ``wait_closed()``.
        """
        session = self.create_session(
            endpoint,
            body,
            on_data,
            on_open=on_open,
            on_error=on_error,
            on_done=on_done,
            decoder=decoder,
            extra_headers=extra_headers,
        )
        session.start()
        return session

    async def astream(
        self,
        endpoint: str,
        body: Mapping[str, Any] | None,
        on_data: OnData[T],
        *,
        on_open: OnOpen | None = None,
        on_error: OnError | None = None,
        on_done: OnDone | None = None,
        decoder: MessageDecoder[T] | None = None,
        extra_headers: Mapping[str, str] | None = None,
    ) -> StreamSession[T]:
        """Run a streaming session to completion in the current task."""
        session = self.create_session(
            endpoint,
            body,
            on_data,
            on_open=on_open,
            on_error=on_error,
            on_done=on_done,
            decoder=decoder,
            extra_headers=extra_headers,
        )
        await session.run()
        return session

    async def iter_stream(
        self,
        endpoint: str,
        body: Mapping[str, Any] | None = None,
        decoder: MessageDecoder[T] | None = None,
        *,
        extra_headers: Mapping[str, str] | None = None,
    ) -> AsyncGenerator[T]:
        """
        Iterate decoded messages from a streaming endpoint.

        Ends after the ``[DONE]`` sentinel. Raises ``TransportError`` (including
        ``UnexpectedCloseError``) or ``DecodeError`` instead of calling back.
        """
        decode = decoder or identity_decoder
        request = self.build_stream_request(endpoint, body, extra_headers)
        response = await open_stream(
            self.http, request, require_event_stream=self.require_event_stream
        )
        try:
            async with aclosing(iter_stream_events(response)) as events:
                async for event in events:
                    if isinstance(event, TerminalEvent):
                        return
                    if isinstance(event, MalformedPayloadEvent):
                        raise DecodeError(event.raw, event.cause)
                    try:
                        message = decode(event.value)
                    except (ValueError, TypeError) as e:
                        raise DecodeError(event.payload, str(e)) from e
                    yield message
            raise UnexpectedCloseError()
        finally:
            await response.aclose()

    async def request(
        self,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a one-shot request; raises ``httpx.HTTPStatusError`` on 4xx/5xx."""
        response = await self.http.request(method, path, **kwargs)
        response.raise_for_status()
        return response

    async def request_json(self, method: str, path: str, **kwargs: Any) -> Any:
        response = await self.request(method, path, **kwargs)
        return response.json()

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.http.aclose()

    async def __aenter__(self) -> OpenAIClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
