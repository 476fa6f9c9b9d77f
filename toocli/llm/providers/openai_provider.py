"""
OpenAI LLM provider.

Streams chat-completion deltas. Tool calls arrive incrementally: the first
delta for a call carries its id, position and name, later deltas carry
argument text fragments keyed only by position. Fragments are accumulated
and parsed once ``finish_reason`` is reported.

Environment variable: OPENAI_API_KEY (read when building the profile)
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from toocli.config import ProviderSettings
from toocli.exceptions import (
    AuthFailure,
    InvalidResponse,
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


class OpenAIProvider(BaseLLMProvider):
    """Provider for OpenAI's chat completions API."""

    provider_name = "OpenAI"
    default_base_url: str | None = None

    def __init__(
        self,
        settings: ProviderSettings,
        strict_tool_arguments: bool = False,
        client: Any = None,
    ):
        super().__init__(settings, strict_tool_arguments)
        if client is None:
            from openai import OpenAI

            client = OpenAI(
                api_key=settings.api_key,
                base_url=settings.base_url or self.default_base_url,
                max_retries=0,
                **self._client_kwargs(),
            )
        self.client = client

    def _client_kwargs(self) -> dict[str, Any]:
        return {}

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
            response = self.client.chat.completions.create(**params)

        return self._normalize(response)

    def stream(
        self,
        messages: list[Message],
        tools: list[ToolDefinition] | None = None,
    ) -> Iterator[StreamChunk]:
        tools = self._tools_for_request(tools)
        params = self._request_params(messages, tools)
        params["stream"] = True
        params["stream_options"] = {"include_usage": True}
        self._log_request(messages, tools, stream=True)

        acc = ToolCallAccumulator(strict=self.strict_tool_arguments)
        content_parts: list[str] = []
        usage: Usage | None = None

        with self._translate_errors():
            for chunk in self.client.chat.completions.create(**params):
                with self._shape_guard():
                    text, deltas, finished, chunk_usage = _read_chunk(chunk)

                if chunk_usage is not None:
                    usage = chunk_usage
                if text:
                    content_parts.append(text)
                    yield StreamChunk.text(text)
                for index, call_id, name, arguments in deltas:
                    acc.feed(index=index, call_id=call_id, name=name, arguments_delta=arguments)

                if finished:
                    for call in acc.complete():
                        yield StreamChunk.call(call)

        # Streams cut short without a finish_reason still release their calls.
        for call in acc.complete():
            yield StreamChunk.call(call)

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
            "max_tokens": self.settings.max_tokens,
            "temperature": self.settings.temperature,
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

    def _normalize(self, response) -> AIResponse:
        with self._shape_guard():
            if not response.choices:
                raise InvalidResponse("Response contained no choices.", provider=self.provider_name)

            message = response.choices[0].message
            content = message.content or ""
            blocks = [
                (tc.id, tc.function.name, tc.function.arguments or "")
                for tc in message.tool_calls or []
            ]
            usage = _usage(response.usage) if getattr(response, "usage", None) else None

        acc = ToolCallAccumulator(strict=self.strict_tool_arguments)
        for call_id, name, arguments in blocks:
            acc.add_block(call_id, name, arguments)

        return AIResponse(
            content=content,
            model=self.settings.model,
            tool_calls=acc.calls(),
            usage=usage,
        )

    @contextmanager
    def _translate_errors(self):
        import openai

        name = self.provider_name
        try:
            yield
        except (openai.AuthenticationError, openai.PermissionDeniedError) as exc:
            raise AuthFailure(f"{name} rejected the API key: {exc}", provider=name) from exc
        except openai.RateLimitError as exc:
            raise RateLimited(f"{name} rate limit exceeded: {exc}", provider=name) from exc
        except openai.APIConnectionError as exc:
            raise NetworkFailure(f"Could not reach {name}: {exc}", provider=name) from exc
        except openai.APIResponseValidationError as exc:
            raise InvalidResponse(f"{name} returned an invalid payload: {exc}", provider=name) from exc
        except openai.APIStatusError as exc:
            if exc.status_code >= 500:
                raise NetworkFailure(f"{name} server error: {exc}", provider=name) from exc
            raise ProviderError(f"{name} request failed: {exc}", provider=name) from exc


def _translate_message(message: Message) -> dict[str, Any]:
    if not message.images:
        return {"role": message.role.value, "content": message.content}

    parts: list[dict[str, Any]] = [{"type": "text", "text": message.content}]
    for ref in message.images:
        mime, data = encode_image(ref)
        parts.append({
            "type": "image_url",
            "image_url": {"url": f"data:{mime};base64,{data}"},
        })
    return {"role": message.role.value, "content": parts}


def _read_chunk(chunk) -> tuple[str, list[tuple], bool, Usage | None]:
    """Pull text, tool-call deltas, the finish flag and usage out of one chunk."""
    usage = _usage(chunk.usage) if getattr(chunk, "usage", None) else None
    if not chunk.choices:
        return "", [], False, usage

    choice = chunk.choices[0]
    delta = choice.delta
    text = ""
    deltas = []
    if delta is not None:
        text = delta.content or ""
        for tc in getattr(delta, "tool_calls", None) or []:
            fn = getattr(tc, "function", None)
            deltas.append((
                getattr(tc, "index", None),
                getattr(tc, "id", None),
                getattr(fn, "name", None),
                getattr(fn, "arguments", None),
            ))
    return text, deltas, bool(choice.finish_reason), usage


def _usage(raw) -> Usage:
    prompt = raw.prompt_tokens or 0
    completion = raw.completion_tokens or 0
    return Usage(
        input_tokens=prompt,
        output_tokens=completion,
        total_tokens=raw.total_tokens or (prompt + completion),
    )
