"""
Request values and wire models.

This module provides:
- StreamRequest: the immutable description of one streaming call
- Pydantic models for the messages carried inside stream frames
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RunStatus(Enum):
    """Assistant run statuses."""
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    REQUIRES_ACTION = "requires_action"
    CANCELLING = "cancelling"
    CANCELLED = "cancelled"
    FAILED = "failed"
    COMPLETED = "completed"
    INCOMPLETE = "incomplete"
    EXPIRED = "expired"


TERMINAL_RUN_STATUSES = frozenset({
    RunStatus.REQUIRES_ACTION.value,
    RunStatus.CANCELLED.value,
    RunStatus.FAILED.value,
    RunStatus.COMPLETED.value,
    RunStatus.INCOMPLETE.value,
    RunStatus.EXPIRED.value,
})


def _freeze(params: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(params))


@dataclass(frozen=True)
class StreamRequest:
    """One streaming call: endpoint, bearer credential and request params."""
    endpoint: str
    api_key: str = field(repr=False)
    params: Mapping[str, Any] = field(default_factory=dict)
    extra_headers: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "params", _freeze(self.params))
        object.__setattr__(self, "extra_headers", _freeze(self.extra_headers))

    def payload(self) -> dict[str, Any]:
        """Build a new request body with streaming switched on."""
        return {**self.params, "stream": True}

    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
            **self.extra_headers,
        }


class WireModel(BaseModel):
    """Base for API objects; unknown fields are preserved."""
    model_config = ConfigDict(extra="allow")


class ToolCallFunctionDelta(WireModel):
    name: str | None = None
    arguments: str | None = None


class ToolCallDelta(WireModel):
    index: int = 0
    id: str | None = None
    type: str | None = None
    function: ToolCallFunctionDelta | None = None


class ChoiceDelta(WireModel):
    role: str | None = None
    content: str | None = None
    refusal: str | None = None
    tool_calls: list[ToolCallDelta] | None = None


class ChunkChoice(WireModel):
    index: int = 0
    delta: ChoiceDelta = Field(default_factory=ChoiceDelta)
    finish_reason: str | None = None
    logprobs: dict[str, Any] | None = None


class CompletionUsage(WireModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatCompletionChunk(WireModel):
    """One increment of a streamed chat completion."""
    id: str
    object: str = "chat.completion.chunk"
    created: int = 0
    model: str = ""
    choices: list[ChunkChoice] = []
    system_fingerprint: str | None = None
    usage: CompletionUsage | None = None

    @property
    def content(self) -> str:
        """Concatenated content deltas of all choices in this chunk."""
        return "".join(choice.delta.content or "" for choice in self.choices)


class ThreadRun(WireModel):
    """Run-status object (or run-stream event object) from the Assistants API."""
    id: str
    object: str = "thread.run"
    created_at: int | None = None
    thread_id: str | None = None
    assistant_id: str | None = None
    status: str | None = None
    model: str | None = None
    instructions: str | None = None
    last_error: dict[str, Any] | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_RUN_STATUSES
