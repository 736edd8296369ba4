"""
One-shot REST resources plus the typed streaming helpers.

Each REST method is a direct forward to the shared HTTP client. Failures are
converted to ``APIError`` by ``api_operation``.
"""

from __future__ import annotations

import asyncio
import mimetypes
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ..logging_utils import api_operation, operation_context
from .models import TERMINAL_RUN_STATUSES, ChatCompletionChunk, ThreadRun
from .streaming.router import OnDone, OnError, OnOpen
from .streaming.session import StreamSession

if TYPE_CHECKING:
    from collections.abc import Callable

    from .client import OpenAIClient

ASSISTANTS_HEADERS = {"OpenAI-Beta": "assistants=v2"}


class Resource:
    """Base for resource namespaces bound to one client."""

    def __init__(self, client: OpenAIClient) -> None:
        self._client = client


class Models(Resource):
    @api_operation("models.list")
    async def list(self) -> list[dict[str, Any]]:
        return (await self._client.request_json("GET", "/models"))["data"]


class Moderations(Resource):
    @api_operation("moderations.create")
    async def create(self, body: Mapping[str, Any]) -> dict[str, Any]:
        return await self._client.request_json("POST", "/moderations", json=dict(body))


class Completions(Resource):
    @api_operation("chat.completions.create")
    async def create(self, body: Mapping[str, Any]) -> dict[str, Any]:
        """Create a non-streaming chat completion."""
        payload = {**body, "stream": False}
        return await self._client.request_json(
            "POST", "/chat/completions", json=payload
        )

    def stream(
        self,
        params: Mapping[str, Any],
        on_data: Callable[[ChatCompletionChunk], Any],
        *,
        on_open: OnOpen | None = None,
        on_error: OnError | None = None,
        on_done: OnDone | None = None,
    ) -> StreamSession[ChatCompletionChunk]:
        """
        Stream a chat completion.

        Args:
            params: Chat completion parameters; streaming is implied.
            on_data: Called with each ``ChatCompletionChunk`` in arrival order.
            on_open: Called once the server accepts the stream.
            on_error: Called once if the stream fails.
            on_done: Called once after the ``[DONE]`` sentinel.

        Returns:
            The started session.
        """
        return self._client.stream(
            "/chat/completions",
            params,
            on_data,
            on_open=on_open,
            on_error=on_error,
            on_done=on_done,
            decoder=ChatCompletionChunk.model_validate,
        )


class Chat(Resource):
    def __init__(self, client: OpenAIClient) -> None:
        super().__init__(client)
        self.completions = Completions(client)


class Files(Resource):
    @api_operation("files.create")
    async def create(self, file_path: str | Path, purpose: str) -> dict[str, Any]:
        """Upload a local file as multipart form data with the given purpose."""
        path = Path(file_path)
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        with path.open("rb") as fh:
            return await self._client.request_json(
                "POST",
                "/files",
                data={"purpose": purpose},
                files={"file": (path.name, fh, content_type)},
            )

    @api_operation("files.content")
    async def content(self, file_id: str) -> bytes:
        response = await self._client.request("GET", f"/files/{file_id}/content")
        return response.content

    @api_operation("files.delete")
    async def delete(self, file_id: str) -> dict[str, Any]:
        return await self._client.request_json("DELETE", f"/files/{file_id}")

    @api_operation("files.retrieve")
    async def retrieve(self, file_id: str) -> dict[str, Any]:
        return await self._client.request_json("GET", f"/files/{file_id}")

    @api_operation("files.list")
    async def list(self) -> list[dict[str, Any]]:
        return (await self._client.request_json("GET", "/files"))["data"]


class AssistantsResource(Resource):
    """Resources under the Assistants beta; every call sends the beta header."""

    async def _call(self, method: str, path: str, **kwargs: Any) -> Any:
        return await self._client.request_json(
            method, path, headers=ASSISTANTS_HEADERS, **kwargs
        )


class Assistants(AssistantsResource):
    @api_operation("beta.assistants.list")
    async def list(self) -> list[dict[str, Any]]:
        return (await self._call("GET", "/assistants"))["data"]

    @api_operation("beta.assistants.create")
    async def create(self, body: Mapping[str, Any]) -> dict[str, Any]:
        return await self._call("POST", "/assistants", json=dict(body))

    @api_operation("beta.assistants.delete")
    async def delete(self, assistant_id: str) -> dict[str, Any]:
        return await self._call("DELETE", f"/assistants/{assistant_id}")

    @api_operation("beta.assistants.retrieve")
    async def retrieve(self, assistant_id: str) -> dict[str, Any]:
        return await self._call("GET", f"/assistants/{assistant_id}")

    @api_operation("beta.assistants.update")
    async def update(
        self, assistant_id: str, body: Mapping[str, Any]
    ) -> dict[str, Any]:
        return await self._call("POST", f"/assistants/{assistant_id}", json=dict(body))


class Messages(AssistantsResource):
    @api_operation("beta.threads.messages.list")
    async def list(
        self, thread_id: str, query: Mapping[str, Any] | None = None
    ) -> dict[str, Any]:
        """Return the full page (``data``, ``first_id``, ``last_id``, ``has_more``)."""
        return await self._call(
            "GET", f"/threads/{thread_id}/messages", params=dict(query or {})
        )

    @api_operation("beta.threads.messages.create")
    async def create(self, thread_id: str, body: Mapping[str, Any]) -> dict[str, Any]:
        return await self._call(
            "POST", f"/threads/{thread_id}/messages", json=dict(body)
        )

    @api_operation("beta.threads.messages.delete")
    async def delete(self, thread_id: str, message_id: str) -> dict[str, Any]:
        return await self._call(
            "DELETE", f"/threads/{thread_id}/messages/{message_id}"
        )


class Runs(AssistantsResource):
    @api_operation("beta.threads.runs.retrieve")
    async def retrieve(self, thread_id: str, run_id: str) -> dict[str, Any]:
        return await self._call("GET", f"/threads/{thread_id}/runs/{run_id}")

    @api_operation("beta.threads.runs.create")
    async def create(self, thread_id: str, body: Mapping[str, Any]) -> dict[str, Any]:
        payload = {**body, "stream": False}
        return await self._call("POST", f"/threads/{thread_id}/runs", json=payload)

    async def poll(
        self,
        thread_id: str,
        run_id: str,
        poll_interval: float | None = None,
    ) -> dict[str, Any]:
        """Re-fetch a run until it reaches a terminal status."""
        interval = poll_interval or self._client.poll_interval
        async with operation_context(
            "beta.threads.runs.poll",
            context={"thread_id": thread_id, "run_id": run_id},
        ) as poll_logger:
            while True:
                run = await self.retrieve(thread_id, run_id)
                if run.get("status") in TERMINAL_RUN_STATUSES:
                    poll_logger.debug("Run reached terminal status", status=run["status"])
                    return run
                await asyncio.sleep(interval)

    def stream(
        self,
        thread_id: str,
        params: Mapping[str, Any],
        on_data: Callable[[ThreadRun], Any],
        *,
        on_open: OnOpen | None = None,
        on_error: OnError | None = None,
        on_done: OnDone | None = None,
    ) -> StreamSession[ThreadRun]:
        """Create a run on ``thread_id`` and stream its events."""
        return self._client.stream(
            f"/threads/{thread_id}/runs",
            params,
            on_data,
            on_open=on_open,
            on_error=on_error,
            on_done=on_done,
            decoder=ThreadRun.model_validate,
            extra_headers=ASSISTANTS_HEADERS,
        )


class Threads(AssistantsResource):
    def __init__(self, client: OpenAIClient) -> None:
        super().__init__(client)
        self.messages = Messages(client)
        self.runs = Runs(client)

    @api_operation("beta.threads.create")
    async def create(self, body: Mapping[str, Any] | None = None) -> dict[str, Any]:
        return await self._call("POST", "/threads", json=dict(body or {}))

    @api_operation("beta.threads.retrieve")
    async def retrieve(self, thread_id: str) -> dict[str, Any]:
        return await self._call("GET", f"/threads/{thread_id}")

    @api_operation("beta.threads.update")
    async def update(self, thread_id: str, body: Mapping[str, Any]) -> dict[str, Any]:
        return await self._call("POST", f"/threads/{thread_id}", json=dict(body))

    @api_operation("beta.threads.delete")
    async def delete(self, thread_id: str) -> dict[str, Any]:
        return await self._call("DELETE", f"/threads/{thread_id}")

    @api_operation("beta.threads.create_and_run")
    async def create_and_run(self, body: Mapping[str, Any]) -> dict[str, Any]:
        payload = {**body, "stream": False}
        return await self._call("POST", "/threads/runs", json=payload)

    async def create_and_run_poll(
        self,
        body: Mapping[str, Any],
        poll_interval: float | None = None,
    ) -> dict[str, Any]:
        """Create a thread, start a run on it and wait for a terminal status."""
        run = await self.create_and_run(body)
        if run.get("status") in TERMINAL_RUN_STATUSES:
            return run
        return await self.runs.poll(run["thread_id"], run["id"], poll_interval)


class Beta(Resource):
    def __init__(self, client: OpenAIClient) -> None:
        super().__init__(client)
        self.assistants = Assistants(client)
        self.threads = Threads(client)
