"""
Unified conversation types.

Every provider adapter speaks these types on both sides: callers hand in
``Message`` and ``ToolDefinition`` lists, and adapters return ``AIResponse``
(blocking) or a sequence of ``StreamChunk`` values ending in exactly one
``done`` chunk (streaming). Vendor-specific shapes never leak past an
adapter.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


@dataclass
class Message:
    """
    One conversation message.

    Attributes:
        role: Who produced the message.
        content: Message text.
        images: Optional image references, each either a local file path or
            a ``data:<mime>;base64,<payload>`` URL.
    """

    role: Role
    content: str
    images: list[str] | None = None

    def __post_init__(self) -> None:
        self.role = Role(self.role)

    @classmethod
    def user(cls, content: str, images: list[str] | None = None) -> "Message":
        return cls(Role.USER, content, images)

    @classmethod
    def assistant(cls, content: str) -> "Message":
        return cls(Role.ASSISTANT, content)

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(Role.SYSTEM, content)


@dataclass
class ToolDefinition:
    """A tool as advertised to the model."""

    name: str
    description: str
    input_schema: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )


@dataclass
class ToolCall:
    """A fully materialized tool call. ``arguments`` is always a parsed dict."""

    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolResult:
    """Outcome of executing one ``ToolCall``."""

    tool_call_id: str
    output: str
    is_error: bool = False


@dataclass
class Usage:
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    def __add__(self, other: "Usage") -> "Usage":
        return Usage(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )


@dataclass
class AIResponse:
    """
    A complete model response.

    ``tool_calls`` is ``None`` rather than an empty list when the model made
    no calls. ``usage`` is ``None`` when the vendor did not report it; it is
    never estimated.
    """

    content: str
    model: str
    tool_calls: list[ToolCall] | None = None
    usage: Usage | None = None

    def __post_init__(self) -> None:
        if not self.tool_calls:
            self.tool_calls = None


class ChunkType(str, Enum):
    CONTENT = "content"
    TOOL_CALL = "tool_call"
    DONE = "done"


@dataclass
class StreamChunk:
    """
    One discrete unit of streamed output.

    ``content`` chunks carry a text fragment, ``tool_call`` chunks carry a
    completed ``ToolCall``, and the single terminal ``done`` chunk carries
    the final ``AIResponse``.
    """

    type: ChunkType
    content: str | None = None
    tool_call: ToolCall | None = None
    response: AIResponse | None = None

    @classmethod
    def text(cls, content: str) -> "StreamChunk":
        return cls(ChunkType.CONTENT, content=content)

    @classmethod
    def call(cls, tool_call: ToolCall) -> "StreamChunk":
        return cls(ChunkType.TOOL_CALL, tool_call=tool_call)

    @classmethod
    def finished(cls, response: AIResponse) -> "StreamChunk":
        return cls(ChunkType.DONE, response=response)

    @property
    def done(self) -> bool:
        return self.type is ChunkType.DONE


def split_system(messages: list[Message]) -> tuple[str | None, list[Message]]:
    """
    Separate system messages from conversation turns.

    Multiple system messages are joined with blank lines. Turn order is
    preserved verbatim.
    """
    system_parts = [m.content for m in messages if m.role is Role.SYSTEM]
    turns = [m for m in messages if m.role is not Role.SYSTEM]
    system = "\n\n".join(system_parts) if system_parts else None
    return system, turns


def ensure_unique_names(tools: list[ToolDefinition] | None) -> None:
    """
    Reject a tool list with duplicate names.

    Raises:
        ValueError: If two definitions share a name.
    """
    seen: set[str] = set()
    for tool in tools or []:
        if tool.name in seen:
            raise ValueError(
                f"Duplicate tool name '{tool.name}'. Namespace tools from "
                "different sources before passing them to a provider."
            )
        seen.add(tool.name)
