"""
Conversation runner.

The ConversationRunner drives one conversation, one turn at a time:
  1. Accepts a user submission while idle (submissions while busy are
     rejected, never queued).
  2. Builds the outbound message list (system prompt, replayed user and
     assistant history, the new user message) and pulls the provider's
     chunk stream, forwarding content fragments as they arrive.
  3. Executes the response's tool calls strictly one after another, in
     the order the model returned them, recording each result before the
     next call starts.
  4. Appends the assistant's final content, taken from the completed
     response rather than the streamed fragments, and returns to idle.

Tool results are recorded in the transcript but not sent back to the
model for a follow-up completion; a turn ends on the model's first
response.

The transcript is append-only and has a single writer, the runner.
"""

import json
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Protocol, Union

from toocli.config import DEFAULT_SYSTEM_PROMPT, capabilities_for
from toocli.exceptions import InvalidResponse, format_error
from toocli.llm.base import BaseLLMProvider
from toocli.llm.types import (
    AIResponse,
    ChunkType,
    Message,
    ToolCall,
    ToolDefinition,
    ToolResult,
    Usage,
)
from toocli.logger import get_logger


class ToolExecutor(Protocol):
    """Runs one tool call; the result exposes ``output`` and ``is_error``."""

    def execute(self, name: str, arguments: dict[str, Any]) -> Any: ...


class ToolCatalog(Protocol):
    def definitions(self) -> list[ToolDefinition]: ...


class LoopState(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    TOOL_EXECUTION = "tool_execution"


class EntryRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"
    ERROR = "error"


@dataclass(frozen=True)
class TranscriptEntry:
    role: EntryRole
    content: str
    tool_name: str | None = None
    tool_call_id: str | None = None
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class TurnResult:
    """Outcome of one accepted submission."""

    response: AIResponse | None
    tool_results: list[ToolResult] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


_REPLAYED_ROLES = {EntryRole.USER, EntryRole.ASSISTANT}


class ConversationRunner:
    """
    Stateful single-conversation turn loop.

    Maintains the transcript across ``submit()`` calls so follow-up
    messages see prior user and assistant turns.
    """

    def __init__(
        self,
        provider: BaseLLMProvider,
        executor: ToolExecutor | None = None,
        tools: Union[ToolCatalog, list[ToolDefinition], None] = None,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        tool_call_provider: BaseLLMProvider | None = None,
    ):
        """
        Args:
            provider: Provider adapter used for every turn.
            executor: Runs the model's tool calls. Without one, every tool
                call is recorded as an error.
            tools: Tool catalog (or a plain list of definitions) sent
                unchanged with every request.
            system_prompt: System message prepended to every request. It is
                never stored in the transcript.
            tool_call_provider: Used instead of ``provider`` when tools are
                available but the main model cannot call them.
        """
        self._provider = provider
        self._executor = executor
        self._tools = tools
        self._system_prompt = system_prompt
        self._tool_call_provider = tool_call_provider
        self._logger = get_logger()

        self._transcript: list[TranscriptEntry] = []
        self._usage = Usage()
        self._state = LoopState.IDLE
        self._busy = threading.Lock()
        self._buffer: list[str] = []

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def submit(
        self,
        user_input: str,
        on_content: Callable[[str], None] | None = None,
        on_tool_result: Callable[[ToolCall, ToolResult], None] | None = None,
        images: list[str] | None = None,
    ) -> TurnResult | None:
        """
        Run one turn for a user message.

        Args:
            user_input: The user's message.
            on_content: Called with each streamed content fragment.
            on_tool_result: Called after each tool call is recorded.
            images: Optional image references attached to the message.

        Returns:
            The turn's outcome, or None when the submission was rejected
            because a turn is already in progress.
        """
        if not self._busy.acquire(blocking=False):
            self._logger.warning("Conversation is busy; submission rejected.")
            return None
        try:
            return self._run_turn(user_input, images, on_content, on_tool_result)
        finally:
            self._buffer = []
            self._state = LoopState.IDLE
            self._busy.release()

    def clear_history(self) -> bool:
        """Reset transcript and usage. Refused (returns False) while busy."""
        if not self._busy.acquire(blocking=False):
            return False
        try:
            self._transcript = []
            self._usage = Usage()
            self._logger.turn_event("HISTORY_CLEARED")
            return True
        finally:
            self._busy.release()

    @property
    def transcript(self) -> tuple[TranscriptEntry, ...]:
        """Snapshot of the transcript."""
        return tuple(self._transcript)

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def is_busy(self) -> bool:
        return self._busy.locked()

    @property
    def streaming_content(self) -> str:
        """Content streamed so far in the current turn."""
        return "".join(self._buffer)

    @property
    def token_usage(self) -> Usage:
        """Usage accumulated over every completed turn."""
        return self._usage

    @property
    def provider(self) -> BaseLLMProvider:
        return self._provider

    # ------------------------------------------------------------------
    # Turn loop
    # ------------------------------------------------------------------

    def _run_turn(
        self,
        user_input: str,
        images: list[str] | None,
        on_content: Callable[[str], None] | None,
        on_tool_result: Callable[[ToolCall, ToolResult], None] | None,
    ) -> TurnResult:
        self._logger.turn_event("USER_INPUT", user_input[:120])

        outbound = [
            Message.system(self._system_prompt),
            *self._history(),
            Message.user(user_input, images),
        ]
        self._append(EntryRole.USER, user_input)

        self._state = LoopState.STREAMING
        try:
            response = self._stream(outbound, on_content)
        except Exception as exc:
            message = format_error(exc)
            self._logger.error(f"Turn failed: {message}")
            self._append(EntryRole.ERROR, message)
            return TurnResult(response=None, error=message)

        results: list[ToolResult] = []
        if response.tool_calls:
            self._state = LoopState.TOOL_EXECUTION
            for call in response.tool_calls:
                result = self._execute(call)
                results.append(result)
                if on_tool_result is not None:
                    self._notify(on_tool_result, call, result)

        # The final payload wins over the streamed buffer, even when empty.
        content = response.content
        self._append(EntryRole.ASSISTANT, content)
        if response.usage is not None:
            self._usage = self._usage + response.usage

        self._logger.turn_event(
            "RESPONSE", f"chars={len(content)} tool_calls={len(results)}"
        )
        return TurnResult(response=response, tool_results=results)

    def _stream(
        self,
        outbound: list[Message],
        on_content: Callable[[str], None] | None,
    ) -> AIResponse:
        tools = self.tool_definitions()
        provider = self._active_provider(tools)

        response: AIResponse | None = None
        for chunk in provider.stream(outbound, tools or None):
            if chunk.type is ChunkType.CONTENT and chunk.content:
                self._buffer.append(chunk.content)
                if on_content is not None:
                    on_content(chunk.content)
            elif chunk.type is ChunkType.DONE:
                response = chunk.response

        if response is None:
            raise InvalidResponse(
                "Stream ended without a completion signal.",
                provider=provider.get_provider_name(),
            )
        return response

    def _execute(self, call: ToolCall) -> ToolResult:
        """Execute a single tool call and record both the call and its result."""
        self._append(
            EntryRole.TOOL,
            f"Call: {json.dumps(call.arguments, ensure_ascii=False)}",
            tool_name=call.name,
            tool_call_id=call.id,
        )

        if self._executor is None:
            result = ToolResult(call.id, "No tool executor is configured.", is_error=True)
        else:
            try:
                outcome = self._executor.execute(call.name, call.arguments)
                result = ToolResult(call.id, str(outcome.output), bool(outcome.is_error))
            except Exception as exc:
                result = ToolResult(
                    call.id, f"Error executing '{call.name}': {format_error(exc)}", is_error=True
                )

        self._append(
            EntryRole.ERROR if result.is_error else EntryRole.TOOL,
            result.output,
            tool_name=call.name,
            tool_call_id=call.id,
        )
        return result

    def _notify(
        self,
        on_tool_result: Callable[[ToolCall, ToolResult], None],
        call: ToolCall,
        result: ToolResult,
    ) -> None:
        """Report a recorded result; a failing observer does not stop the turn."""
        try:
            on_tool_result(call, result)
        except Exception as exc:
            self._logger.warning(
                f"on_tool_result callback failed for '{call.name}': {format_error(exc)}"
            )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _history(self) -> list[Message]:
        return [
            Message(entry.role.value, entry.content)
            for entry in self._transcript
            if entry.role in _REPLAYED_ROLES and entry.content
        ]

    def tool_definitions(self) -> list[ToolDefinition]:
        if self._tools is None:
            return []
        if isinstance(self._tools, list):
            return self._tools
        return self._tools.definitions()

    def _active_provider(self, tools: list[ToolDefinition]) -> BaseLLMProvider:
        if (
            tools
            and self._tool_call_provider is not None
            and not capabilities_for(self._provider.get_model()).supports_tools
        ):
            return self._tool_call_provider
        return self._provider

    def _append(
        self,
        role: EntryRole,
        content: str,
        tool_name: str | None = None,
        tool_call_id: str | None = None,
    ) -> None:
        self._transcript.append(
            TranscriptEntry(role, content, tool_name=tool_name, tool_call_id=tool_call_id)
        )
