"""
Anthropic (Claude) LLM provider.

Translates toocli messages/tools to Anthropic's Messages API and normalizes
responses back to ``AIResponse``.

Key differences handled:
- System prompt is a top-level parameter (not a message)
- Tool definitions use ``input_schema`` instead of ``parameters``
- The stream is a sequence of typed events: ``message_start``,
  ``content_block_start``/``_delta``/``_stop``, ``message_delta``,
  ``message_stop``
- A ``tool_use`` block carries id and name at ``content_block_start``;
  the call is final at ``content_block_stop``. Structured input on the
  start block is used as-is; ``input_json_delta`` fragments, when the API
  sends them, are accumulated and parsed once at the stop event.
- Usage is split: input tokens on ``message_start``, output tokens on
  ``message_delta``
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
    split_system,
)


class AnthropicProvider(BaseLLMProvider):
    """Anthropic Claude provider."""

    provider_name = "Anthropic"

    def __init__(
        self,
        settings: ProviderSettings,
        strict_tool_arguments: bool = False,
        client: Any = None,
    ):
        super().__init__(settings, strict_tool_arguments)
        if client is None:
            import anthropic

            client_kwargs: dict[str, Any] = {"api_key": settings.api_key, "max_retries": 0}
            if settings.base_url:
                client_kwargs["base_url"] = settings.base_url
            client = anthropic.Anthropic(**client_kwargs)
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
            response = self.client.messages.create(**params)

        return self._normalize(response)

    def stream(
        self,
        messages: list[Message],
        tools: list[ToolDefinition] | None = None,
    ) -> Iterator[StreamChunk]:
        tools = self._tools_for_request(tools)
        params = self._request_params(messages, tools)
        params["stream"] = True
        self._log_request(messages, tools, stream=True)

        acc = ToolCallAccumulator(strict=self.strict_tool_arguments)
        content_parts: list[str] = []
        tool_blocks: dict[Any, str] = {}
        input_tokens: int | None = None
        output_tokens: int | None = None

        with self._translate_errors():
            for event in self.client.messages.create(**params):
                with self._shape_guard():
                    kind, index, value = _read_event(event)

                if kind == "message_start" and value is not None:
                    input_tokens = value

                elif kind == "content_block_start" and value is not None:
                    call_id, name, seed = value
                    acc.start(call_id, name, index=index, seed=seed)
                    tool_blocks[index] = call_id

                elif kind == "text_delta":
                    content_parts.append(value)
                    yield StreamChunk.text(value)

                elif kind == "input_json_delta" and index in tool_blocks:
                    acc.feed(call_id=tool_blocks[index], arguments_delta=value)

                elif kind == "content_block_stop":
                    call_id = tool_blocks.pop(index, None)
                    if call_id is not None:
                        for call in acc.complete(call_id):
                            yield StreamChunk.call(call)

                elif kind == "message_delta" and value is not None:
                    output_tokens = value

        for call in acc.complete():
            yield StreamChunk.call(call)

        usage_total = None
        if input_tokens is not None and output_tokens is not None:
            usage_total = Usage(input_tokens, output_tokens, input_tokens + output_tokens)

        yield self._finish("".join(content_parts), acc.calls(), usage_total)

    # ------------------------------------------------------------------
    # Translation
    # ------------------------------------------------------------------

    def _request_params(
        self, messages: list[Message], tools: list[ToolDefinition]
    ) -> dict[str, Any]:
        system, turns = split_system(messages)
        params: dict[str, Any] = {
            "model": self.settings.model,
            "max_tokens": self.settings.max_tokens,
            "temperature": self.settings.temperature,
            "messages": [_translate_message(m) for m in turns],
        }
        if system:
            params["system"] = system
        if tools:
            params["tools"] = [
                {
                    "name": t.name,
                    "description": t.description,
                    "input_schema": t.input_schema,
                }
                for t in tools
            ]
        return params

    def _normalize(self, response) -> AIResponse:
        texts: list[str] = []
        blocks: list[tuple[str, str, Any]] = []
        usage = None

        with self._shape_guard():
            for block in response.content:
                if block.type == "text":
                    texts.append(block.text)
                elif block.type == "tool_use":
                    blocks.append((block.id, block.name, block.input))

            if getattr(response, "usage", None) is not None:
                usage = Usage(
                    input_tokens=response.usage.input_tokens,
                    output_tokens=response.usage.output_tokens,
                    total_tokens=response.usage.input_tokens + response.usage.output_tokens,
                )

        acc = ToolCallAccumulator(strict=self.strict_tool_arguments)
        for call_id, name, arguments in blocks:
            acc.add_block(call_id, name, arguments)

        # Joined exactly as the streamed fragments are.
        return AIResponse(
            content="".join(texts),
            model=self.settings.model,
            tool_calls=acc.calls(),
            usage=usage,
        )

    @contextmanager
    def _translate_errors(self):
        import anthropic

        name = self.provider_name
        try:
            yield
        except (anthropic.AuthenticationError, anthropic.PermissionDeniedError) as exc:
            raise AuthFailure(f"{name} rejected the API key: {exc}", provider=name) from exc
        except anthropic.RateLimitError as exc:
            raise RateLimited(f"{name} rate limit exceeded: {exc}", provider=name) from exc
        except anthropic.APIConnectionError as exc:
            raise NetworkFailure(f"Could not reach {name}: {exc}", provider=name) from exc
        except anthropic.APIStatusError as exc:
            if exc.status_code >= 500:
                raise NetworkFailure(f"{name} server error: {exc}", provider=name) from exc
            raise ProviderError(f"{name} request failed: {exc}", provider=name) from exc


def _translate_message(message: Message) -> dict[str, Any]:
    if not message.images:
        return {"role": message.role.value, "content": message.content}

    blocks: list[dict[str, Any]] = []
    for ref in message.images:
        mime, data = encode_image(ref)
        blocks.append({
            "type": "image",
            "source": {"type": "base64", "media_type": mime, "data": data},
        })
    blocks.append({"type": "text", "text": message.content})
    return {"role": message.role.value, "content": blocks}


def _read_event(event) -> tuple[str, Any, Any]:
    """
    Reduce one stream event to ``(kind, block index, value)``.

    Text and argument deltas are reported under their delta type. The value
    of a ``tool_use`` block start is ``(id, name, structured input)``.
    """
    kind = event.type
    index = getattr(event, "index", None)

    if kind == "message_start":
        usage = getattr(event.message, "usage", None)
        return kind, index, usage.input_tokens if usage is not None else None

    if kind == "content_block_start":
        block = event.content_block
        if block.type != "tool_use":
            return kind, index, None
        seed = getattr(block, "input", None)
        return kind, index, (block.id, block.name, dict(seed) if seed else None)

    if kind == "content_block_delta":
        delta = event.delta
        if delta.type == "text_delta":
            return delta.type, index, delta.text
        if delta.type == "input_json_delta":
            return delta.type, index, delta.partial_json
        return kind, index, None

    if kind == "message_delta":
        usage = getattr(event, "usage", None)
        return kind, index, usage.output_tokens if usage is not None else None

    return kind, index, None
