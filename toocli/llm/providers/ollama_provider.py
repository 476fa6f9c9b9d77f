"""
Ollama LLM provider for locally-hosted models.

Uses Ollama's native ``/api/chat`` endpoint through the ``ollama`` client.
Each streamed part carries a message fragment; tool calls arrive whole
(name plus structured arguments, no ids) and are released as soon as they
are seen. The part flagged ``done`` carries the token counts.

Default endpoint: http://localhost:11434 (``base_url`` in the profile, or
OLLAMA_BASE_URL when building the profile from the environment).
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from toocli.config import ProviderSettings
from toocli.exceptions import (
    AuthFailure,
    NetworkFailure,
    ProviderError,
    RateLimited,
)
from toocli.llm.accumulator import ToolCallAccumulator
from toocli.llm.base import BaseLLMProvider, encode_image
from toocli.llm.types import (
    AIResponse,
    Message,
    StreamChunk,
    ToolDefinition,
    Usage,
)


class OllamaProvider(BaseLLMProvider):
    """Ollama provider for local models."""

    provider_name = "Ollama"

    def __init__(
        self,
        settings: ProviderSettings,
        strict_tool_arguments: bool = False,
        client: Any = None,
    ):
        super().__init__(settings, strict_tool_arguments)
        if client is None:
            from ollama import Client

            client = Client(host=settings.base_url)
        self.client = client

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    def chat(
        self,
        messages: list[Message],
        tools: list[ToolDefinition] | None = None,
    ) -> AIResponse:
        tools = self._tools_for_request(tools)
        params = self._request_params(messages, tools)
        self._log_request(messages, tools, stream=False)

        with self._translate_errors():
            response = self.client.chat(**params, stream=False)

        with self._shape_guard():
            content, blocks = _read_message(response.message)
            usage = _usage(response)

        acc = ToolCallAccumulator(strict=self.strict_tool_arguments)
        for name, arguments in blocks:
            acc.add_block(None, name, arguments)
        return AIResponse(
            content=content,
            model=self.settings.model,
            tool_calls=acc.calls(),
            usage=usage,
        )

    def stream(
        self,
        messages: list[Message],
        tools: list[ToolDefinition] | None = None,
    ) -> Iterator[StreamChunk]:
        tools = self._tools_for_request(tools)
        params = self._request_params(messages, tools)
        self._log_request(messages, tools, stream=True)

        acc = ToolCallAccumulator(strict=self.strict_tool_arguments)
        content_parts: list[str] = []
        usage: Usage | None = None

        with self._translate_errors():
            for part in self.client.chat(**params, stream=True):
                with self._shape_guard():
                    text, blocks = _read_message(part.message)
                    done = bool(part.done)

                if text:
                    content_parts.append(text)
                    yield StreamChunk.text(text)
                for name, arguments in blocks:
                    yield StreamChunk.call(acc.add_block(None, name, arguments))
                if done:
                    usage = _usage(part)

        yield self._finish("".join(content_parts), acc.calls(), usage)

    # ------------------------------------------------------------------
    # Translation
    # ------------------------------------------------------------------

    def _request_params(
        self, messages: list[Message], tools: list[ToolDefinition]
    ) -> dict[str, Any]:
        params: dict[str, Any] = {
            "model": self.settings.model,
            "messages": [_translate_message(m) for m in messages],
            "options": {
                "temperature": self.settings.temperature,
                "num_predict": self.settings.max_tokens,
            },
        }
        if tools:
            params["tools"] = [
                {
                    "type": "function",
                    "function": {
                        "name": t.name,
                        "description": t.description,
                        "parameters": t.input_schema,
                    },
                }
                for t in tools
            ]
        return params

    @contextmanager
    def _translate_errors(self):
        import httpx
        import ollama

        name = self.provider_name
        try:
            yield
        except ollama.ResponseError as exc:
            status = getattr(exc, "status_code", -1)
            if status in (401, 403):
                raise AuthFailure(f"{name} rejected the request: {exc}", provider=name) from exc
            if status == 429:
                raise RateLimited(f"{name} is busy: {exc}", provider=name) from exc
            if status >= 500:
                raise NetworkFailure(f"{name} server error: {exc}", provider=name) from exc
            raise ProviderError(f"{name} request failed: {exc}", provider=name) from exc
        except (ConnectionError, httpx.TransportError) as exc:
            raise NetworkFailure(
                f"Could not reach {name} at {self.settings.base_url}: {exc}", provider=name
            ) from exc


def _translate_message(message: Message) -> dict[str, Any]:
    translated: dict[str, Any] = {"role": message.role.value, "content": message.content}
    if message.images:
        translated["images"] = [encode_image(ref)[1] for ref in message.images]
    return translated


def _read_message(message) -> tuple[str, list[tuple[str, Any]]]:
    """Content fragment and whole tool calls of one message, or nothing."""
    if message is None:
        return "", []
    calls = [(tc.function.name, tc.function.arguments) for tc in message.tool_calls or []]
    return message.content or "", calls


def _usage(part) -> Usage | None:
    prompt = getattr(part, "prompt_eval_count", None)
    completion = getattr(part, "eval_count", None)
    if prompt is None and completion is None:
        return None
    prompt = prompt or 0
    completion = completion or 0
    return Usage(prompt, completion, prompt + completion)
