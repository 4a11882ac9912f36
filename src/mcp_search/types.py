"""Shared request and result models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict

EmbeddingVector = list[float]


class _Undefined:
    """Marks a request field the caller did not send."""

    def __repr__(self) -> str:
        return "undefined"


UNDEFINED: Any = _Undefined()


class McpRequest(BaseModel):
    """Decoded body of a `POST /mcp` call.

    Fields are untyped so that any method value reaches the dispatcher and is
    rejected there with the MCP error message.
    """

    model_config = ConfigDict(extra="ignore", arbitrary_types_allowed=True)

    method: Any = UNDEFINED
    params: Any = None

    @classmethod
    def parse(cls, payload: Any) -> "McpRequest":
        return cls.model_validate(payload if isinstance(payload, dict) else {})


class ToolCallParams(BaseModel):
    """Params of a `tools/call` request."""

    model_config = ConfigDict(extra="ignore", arbitrary_types_allowed=True)

    name: Any = UNDEFINED
    arguments: Any = None

    @classmethod
    def parse(cls, params: Any) -> "ToolCallParams":
        return cls.model_validate(params if isinstance(params, dict) else {})

    def argument_map(self) -> dict[str, Any]:
        return self.arguments if isinstance(self.arguments, dict) else {}


@dataclass(slots=True)
class VectorMatch:
    """A ranked match returned by the vector index."""

    id: str
    score: float
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ToolTrace:
    """Trace record for an executed tool call."""

    name: str
    input_payload: dict[str, Any]
    output_preview: str
    latency_ms: float


def display_value(value: Any) -> str:
    """Render a JSON value the way it reads inside an error message or prompt."""

    if value is UNDEFINED:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, dict):
        return "[object Object]"
    if isinstance(value, list):
        return ",".join("" if item is None else display_value(item) for item in value)
    return str(value)


def text_response(text: str) -> dict[str, Any]:
    """Wrap tool output in the MCP content envelope."""
    return {"content": [{"type": "text", "text": text}]}
