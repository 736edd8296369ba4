"""
Stream session: one streaming request's lifecycle end-to-end.

IDLE -> CONNECTING -> OPEN -> CLOSED. Every exit path closes the response
and produces exactly one terminal callback.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from collections.abc import Callable
from contextlib import aclosing
from typing import Any, Generic, TypeVar

import httpx
from pydantic import ValidationError

from ...logging_utils import ContextualLogger, ErrorHandler
from ..exceptions import (
    DecodeError,
    StreamCancelledError,
    StreamError,
    TransportError,
    UnexpectedCloseError,
)
from ..models import StreamRequest
from .models import (
    MalformedPayloadEvent,
    SessionState,
    StreamEvent,
    StreamingStats,
    TerminalEvent,
)
from .parser import iter_stream_events
from .router import CallbackRouter

T = TypeVar("T")

MessageDecoder = Callable[[Any], T]

EVENT_STREAM_TYPES = ("text/event-stream",)


def identity_decoder(value: Any) -> Any:
    return value


async def open_stream(
    client: httpx.AsyncClient,
    request: StreamRequest,
    *,
    require_event_stream: bool = True,
) -> httpx.Response:
    """
    Send the streaming POST and return the open response.

    Raises:
        TransportError: connection failed, non-2xx status, or the server did
            not answer with an event stream.
    """
    http_request = client.build_request(
        "POST",
        request.endpoint,
        json=request.payload(),
        headers=request.headers(),
    )
    try:
        response = await client.send(http_request, stream=True)
    # RuntimeError covers httpx.StreamError and sending on a closed client
    except (httpx.HTTPError, RuntimeError) as e:
        raise TransportError(f"Connection failed: {e}") from e

    try:
        if not response.is_success:
            error_text = (await response.aread()).decode("utf-8", "replace")
            try:
                response_data = response.json()
            except ValueError:
                response_data = {"body": error_text}
            if not isinstance(response_data, dict):
                response_data = {"body": response_data}
            raise TransportError(
                f"Streaming API error {response.status_code}: {error_text}",
                status_code=response.status_code,
                response_data=response_data,
            )

        content_type = response.headers.get("content-type", "")
        if require_event_stream and not any(
            t in content_type for t in EVENT_STREAM_TYPES
        ):
            raise TransportError(
                f"Expected streaming response, got content-type: {content_type}",
                status_code=response.status_code,
            )
    except (httpx.HTTPError, httpx.StreamError) as e:
        await response.aclose()
        raise TransportError(f"Stream error: {e}") from e
    except TransportError:
        await response.aclose()
        raise

    return response


class StreamSession(Generic[T]):
    """
    Owns one streaming request from connection attempt to terminal callback.

    Create one per call; a session is never reused. ``run()`` drives the whole
    lifecycle; ``start()`` schedules it on the running loop instead.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        request: StreamRequest,
        router: CallbackRouter[T],
        decoder: MessageDecoder[T] | None = None,
        *,
        require_event_stream: bool = True,
    ):
        self.session_id = uuid.uuid4().hex[:12]
        self.request = request
        self._client = client
        self._router = router
        self._decoder: MessageDecoder[T] = decoder or identity_decoder
        self._require_event_stream = require_event_stream
        self._state = SessionState.IDLE
        self._response: httpx.Response | None = None
        self._close_count = 0
        self._task: asyncio.Task[None] | None = None
        self.stats = StreamingStats()
        self._logger = ContextualLogger({
            "session_id": self.session_id,
            "endpoint": request.endpoint,
        })

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def close_count(self) -> int:
        """How many times the response was actually closed (0 or 1)."""
        return self._close_count

    def start(self) -> asyncio.Task[None]:
        """Schedule ``run()`` on the running event loop and return its task."""
        if self._task is not None:
            raise RuntimeError("StreamSession can only be started once")
        self._task = asyncio.get_running_loop().create_task(
            self.run(), name=f"stream-{self.session_id}"
        )
        return self._task

    async def run(self) -> None:
        """Drive the session until a terminal condition closes it."""
        if self._state is not SessionState.IDLE:
            raise RuntimeError("StreamSession can only be run once")
        if self._task is None:
            self._task = asyncio.current_task()

        self._state = SessionState.CONNECTING
        self.stats.started_at = time.monotonic()
        self._logger.debug("Stream connecting")

        try:
            self._response = await open_stream(
                self._client,
                self.request,
                require_event_stream=self._require_event_stream,
            )
            self._state = SessionState.OPEN
            self.stats.opened_at = time.monotonic()
            self._logger.info("Stream opened")
            self._router.open()

            async with aclosing(iter_stream_events(self._response)) as events:
                async for event in events:
                    self.stats.frames_received += 1
                    if not self._handle_event(event):
                        return

            self._fail(UnexpectedCloseError())

        except StreamError as e:
            self._fail(e)
        except asyncio.CancelledError:
            self._fail(StreamCancelledError())
            raise
        finally:
            await self.close()

    def _handle_event(self, event: StreamEvent) -> bool:
        """Apply one interpreted event; returns False once the session is over."""
        if isinstance(event, TerminalEvent):
            self._logger.info("Stream completed", **self.stats.as_dict())
            self._router.done()
            return False

        if isinstance(event, MalformedPayloadEvent):
            self._fail(DecodeError(event.raw, event.cause))
            return False

        try:
            message = self._decoder(event.value)
        except (ValidationError, ValueError, TypeError) as e:
            self._fail(DecodeError(event.payload, str(e)))
            return False

        if not self._router.data(message):
            return False
        self.stats.messages_dispatched += 1
        return True

    def _fail(self, error: StreamError) -> None:
        if self._router.terminated:
            return
        self._logger.error(
            "Stream failed",
            error_type=type(error).__name__,
            error_category=ErrorHandler.classify_error(error),
            error_message=str(error),
        )
        self._router.error(error)

    async def close(self) -> None:
        """Release the connection. Safe to call any number of times."""
        if self._state is SessionState.CLOSED:
            return
        self._state = SessionState.CLOSED
        self.stats.closed_at = time.monotonic()

        response, self._response = self._response, None
        if response is not None:
            self._close_count += 1
            await response.aclose()
            self._logger.debug("Stream connection released")

    def cancel(self) -> None:
        """Abort the session; delivers ``on_error(StreamCancelledError)``.

        Cancels the task driving ``run()``, whether scheduled by ``start()``
        or awaiting ``run()`` directly.
        """
        if self._state is SessionState.CLOSED:
            return
        # A task cancelled before its first step never enters run()
        if self._state is SessionState.IDLE:
            self._fail(StreamCancelledError())
            self._state = SessionState.CLOSED
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait_closed(self) -> None:
        """Wait for a started session to finish.

        Re-raises any exception a caller callback raised.
        """
        if self._task is None:
            raise RuntimeError("StreamSession was not started")
        await asyncio.wait({self._task})
        if not self._task.cancelled():
            self._task.result()

    def get_stats(self) -> dict[str, Any]:
        """Get streaming statistics for monitoring."""
        return {"state": self._state.value, **self.stats.as_dict()}
