"""
Google Gemini LLM provider (google-genai SDK).

Translates toocli messages/tools to Google's Content/Part objects and
normalizes responses back to ``AIResponse``.

Key differences:
- System instruction is part of GenerateContentConfig
- Assistant role is "model" (not "assistant")
- Only text is treated as incremental. Function calls are collected as
  whole parts while the stream is read and released only after it ends,
  immediately before the ``done`` chunk
- Function calls may come without ids; ids are synthesized
"""

import base64
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
    Role,
    StreamChunk,
    ToolDefinition,
    Usage,
    split_system,
)


class GoogleProvider(BaseLLMProvider):
    """Google Gemini provider."""

    provider_name = "Google"

    def __init__(
        self,
        settings: ProviderSettings,
        strict_tool_arguments: bool = False,
        client: Any = None,
    ):
        super().__init__(settings, strict_tool_arguments)
        if client is None:
            from google import genai

            client = genai.Client(api_key=settings.api_key)
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
        contents, config = self._request(messages, tools)
        self._log_request(messages, tools, stream=False)

        with self._translate_errors():
            response = self.client.models.generate_content(
                model=self.settings.model,
                contents=contents,
                config=config,
            )

        return self._normalize(response)

    def stream(
        self,
        messages: list[Message],
        tools: list[ToolDefinition] | None = None,
    ) -> Iterator[StreamChunk]:
        tools = self._tools_for_request(tools)
        contents, config = self._request(messages, tools)
        self._log_request(messages, tools, stream=True)

        acc = ToolCallAccumulator(strict=self.strict_tool_arguments)
        content_parts: list[str] = []
        usage: Usage | None = None

        with self._translate_errors():
            for chunk in self.client.models.generate_content_stream(
                model=self.settings.model,
                contents=contents,
                config=config,
            ):
                with self._shape_guard():
                    texts, blocks, chunk_usage = _read_parts(chunk)

                if chunk_usage is not None:
                    usage = chunk_usage
                for text in texts:
                    content_parts.append(text)
                    yield StreamChunk.text(text)
                for call_id, name, arguments in blocks:
                    acc.add_block(call_id, name, arguments)

        calls = acc.calls()
        for call in calls:
            yield StreamChunk.call(call)

        yield self._finish("".join(content_parts), calls, usage)

    # ------------------------------------------------------------------
    # Translation
    # ------------------------------------------------------------------

    def _request(self, messages: list[Message], tools: list[ToolDefinition]):
        from google.genai import types as gtypes

        system, turns = split_system(messages)

        contents = []
        for msg in turns:
            parts = [gtypes.Part(text=msg.content)]
            for ref in msg.images or []:
                mime, data = encode_image(ref)
                parts.append(gtypes.Part.from_bytes(data=base64.b64decode(data), mime_type=mime))
            role = "model" if msg.role is Role.ASSISTANT else "user"
            contents.append(gtypes.Content(role=role, parts=parts))

        config_kwargs: dict[str, Any] = {
            "temperature": self.settings.temperature,
            "max_output_tokens": self.settings.max_tokens,
            "automatic_function_calling": gtypes.AutomaticFunctionCallingConfig(disable=True),
        }
        if system:
            config_kwargs["system_instruction"] = system
        if tools:
            declarations = [
                {
                    "name": t.name,
                    "description": t.description,
                    "parameters": t.input_schema,
                }
                for t in tools
            ]
            config_kwargs["tools"] = [gtypes.Tool(function_declarations=declarations)]

        return contents, gtypes.GenerateContentConfig(**config_kwargs)

    def _normalize(self, response) -> AIResponse:
        with self._shape_guard():
            texts, blocks, usage = _read_parts(response)

        acc = ToolCallAccumulator(strict=self.strict_tool_arguments)
        for call_id, name, arguments in blocks:
            acc.add_block(call_id, name, arguments)

        return AIResponse(
            content="".join(texts),
            model=self.settings.model,
            tool_calls=acc.calls(),
            usage=usage,
        )

    @contextmanager
    def _translate_errors(self):
        import httpx
        from google.genai import errors

        name = self.provider_name
        try:
            yield
        except errors.ClientError as exc:
            if exc.code in (401, 403):
                raise AuthFailure(f"{name} rejected the API key: {exc}", provider=name) from exc
            if exc.code == 429:
                raise RateLimited(f"{name} rate limit exceeded: {exc}", provider=name) from exc
            raise ProviderError(f"{name} request failed: {exc}", provider=name) from exc
        except errors.ServerError as exc:
            raise NetworkFailure(f"{name} server error: {exc}", provider=name) from exc
        except httpx.TransportError as exc:
            raise NetworkFailure(f"Could not reach {name}: {exc}", provider=name) from exc


def _parts(response) -> list:
    candidates = getattr(response, "candidates", None)
    if not candidates:
        return []
    content = candidates[0].content
    if content is None:
        return []
    return content.parts or []


def _read_parts(response) -> tuple[list[str], list[tuple[Any, str, Any]], Usage | None]:
    """Split a response or stream chunk into text, function calls and usage."""
    texts: list[str] = []
    calls: list[tuple[Any, str, Any]] = []
    for part in _parts(response):
        if getattr(part, "thought", False):
            continue
        if getattr(part, "text", None):
            texts.append(part.text)
        fc = getattr(part, "function_call", None)
        if fc:
            calls.append((getattr(fc, "id", None), fc.name, fc.args or {}))

    meta = getattr(response, "usage_metadata", None)
    return texts, calls, _usage(meta) if meta is not None else None


def _usage(meta) -> Usage:
    prompt = meta.prompt_token_count or 0
    candidates = meta.candidates_token_count or 0
    return Usage(
        input_tokens=prompt,
        output_tokens=candidates,
        total_tokens=meta.total_token_count or (prompt + candidates),
    )
