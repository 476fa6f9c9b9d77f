"""
Abstract base class for LLM providers.

Every provider adapter implements ``chat()`` (one blocking request) and
``stream()`` (a generator of ``StreamChunk`` values ending in exactly one
``done`` chunk). ``chat_stream()`` is the callback facade over ``stream()``
and is shared by all adapters.

Adapters hold no per-conversation state. Everything a single response
needs (content buffer, tool-call accumulator, usage) lives inside one
``stream()`` invocation and is dropped with it.
"""

import base64
import mimetypes
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path

from toocli.config import ProviderSettings, capabilities_for
from toocli.exceptions import InvalidResponse
from toocli.llm.types import (
    AIResponse,
    Message,
    StreamChunk,
    ToolCall,
    ToolDefinition,
    Usage,
    ensure_unique_names,
)
from toocli.logger import get_logger


class BaseLLMProvider(ABC):
    """Abstract interface for an LLM provider."""

    provider_name: str = "Base"

    def __init__(self, settings: ProviderSettings, strict_tool_arguments: bool = False):
        """
        Args:
            settings: The provider's configuration block.
            strict_tool_arguments: Raise ``ToolArgumentParseFailure`` for
                unparseable tool arguments instead of substituting ``{}``.
        """
        self.settings = settings
        self.strict_tool_arguments = strict_tool_arguments
        self._logger = get_logger()

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    @abstractmethod
    def chat(
        self,
        messages: list[Message],
        tools: list[ToolDefinition] | None = None,
    ) -> AIResponse:
        """
        Send one request and wait for the complete response.

        Raises:
            AuthFailure, RateLimited, NetworkFailure, InvalidResponse,
            ProviderError: Translated vendor failures. Never retried.
        """
        ...

    @abstractmethod
    def stream(
        self,
        messages: list[Message],
        tools: list[ToolDefinition] | None = None,
    ) -> Iterator[StreamChunk]:
        """
        Stream one response.

        Yields ``content`` chunks and completed ``tool_call`` chunks in
        arrival order, then exactly one ``done`` chunk whose ``response``
        is the materialized ``AIResponse``. Nothing follows ``done``.
        """
        ...

    def chat_stream(
        self,
        messages: list[Message],
        tools: list[ToolDefinition] | None,
        on_chunk: Callable[[StreamChunk], None],
    ) -> AIResponse:
        """
        Stream one response, delivering every chunk to ``on_chunk``.

        ``on_chunk`` is called synchronously, in arrival order, including
        once for the final ``done`` chunk.

        Returns:
            The same ``AIResponse`` carried by the ``done`` chunk.
        """
        response: AIResponse | None = None
        for chunk in self.stream(messages, tools):
            on_chunk(chunk)
            if chunk.done:
                response = chunk.response
        if response is None:
            raise InvalidResponse(
                "Stream ended without a completion signal.", provider=self.provider_name
            )
        return response

    def get_model(self) -> str:
        return self.settings.model

    def get_provider_name(self) -> str:
        return self.provider_name

    # ------------------------------------------------------------------
    # Shared helpers for adapters
    # ------------------------------------------------------------------

    def _tools_for_request(self, tools: list[ToolDefinition] | None) -> list[ToolDefinition]:
        """Drop tools for models that cannot call them; reject duplicate names."""
        if not tools:
            return []
        if not capabilities_for(self.settings.model).supports_tools:
            self._logger.debug(
                f"Model '{self.settings.model}' does not support tools; sending none."
            )
            return []
        ensure_unique_names(tools)
        return list(tools)

    def _log_request(self, messages: list[Message], tools: list, *, stream: bool) -> None:
        self._logger.provider_request(
            self.provider_name,
            self.settings.model,
            messages=len(messages),
            tools=len(tools),
            stream=stream,
        )

    def _finish(
        self,
        content: str,
        tool_calls: list[ToolCall],
        usage: Usage | None,
    ) -> StreamChunk:
        """Build the terminal ``done`` chunk for a stream."""
        response = AIResponse(
            content=content,
            model=self.settings.model,
            tool_calls=tool_calls,
            usage=usage,
        )
        self._logger.stream_finished(
            self.provider_name,
            content_chars=len(content),
            tool_calls=len(tool_calls),
            usage=usage,
        )
        return StreamChunk.finished(response)

    @contextmanager
    def _shape_guard(self):
        """Report vendor payloads that lack the expected attributes.

        Wraps reads of vendor objects only, so faults in toocli's own
        bookkeeping surface unchanged.
        """
        try:
            yield
        except (AttributeError, IndexError, KeyError, TypeError) as exc:
            raise InvalidResponse(
                f"Unexpected response shape from {self.provider_name}: {exc}",
                provider=self.provider_name,
            ) from exc


def encode_image(ref: str) -> tuple[str, str]:
    """
    Resolve an image reference to ``(mime_type, base64_data)``.

    Accepts ``data:`` URLs and local file paths.

    Raises:
        ValueError: If a file reference cannot be read.
    """
    if ref.startswith("data:"):
        header, _, payload = ref.partition(",")
        mime = header[len("data:"):].split(";")[0] or "image/png"
        return mime, payload

    path = Path(ref).expanduser()
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise ValueError(f"Could not read image '{ref}': {exc}") from exc
    mime = mimetypes.guess_type(path.name)[0] or "image/png"
    return mime, base64.b64encode(raw).decode("ascii")
