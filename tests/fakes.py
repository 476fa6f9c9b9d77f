"""Test doubles shared by the unit tests. No network access anywhere."""

import threading
from collections.abc import Iterable
from types import SimpleNamespace
from typing import Any

from toocli.config import ProviderSettings
from toocli.llm.base import BaseLLMProvider
from toocli.llm.types import AIResponse, StreamChunk, ToolCall, Usage


# ---------------------------------------------------------------------------
# Scripted provider
# ---------------------------------------------------------------------------

class ScriptedProvider(BaseLLMProvider):
    """Provider that replays pre-queued chunk scripts.

    Each queued script is either a list of ``StreamChunk`` values or an
    exception, raised when the stream is opened. ``gate`` (optional) holds
    the stream open after its first chunk until the event is set.
    """

    provider_name = "Scripted"

    def __init__(self, settings=None, strict_tool_arguments=False, scripts=None):
        super().__init__(
            settings or ProviderSettings(model="scripted-model", api_key="test"),
            strict_tool_arguments,
        )
        self.scripts: list[Any] = list(scripts or [])
        self.calls: list[dict] = []
        self.gate: threading.Event | None = None
        self.started = threading.Event()

    def chat(self, messages, tools=None):
        for chunk in self.stream(messages, tools):
            if chunk.done:
                return chunk.response
        raise AssertionError("script has no done chunk")

    def stream(self, messages, tools=None):
        self.calls.append({"messages": list(messages), "tools": tools})
        script = self.scripts.pop(0)
        if isinstance(script, BaseException):
            raise script
        for position, chunk in enumerate(script):
            yield chunk
            if position == 0:
                self.started.set()
                if self.gate is not None:
                    self.gate.wait(timeout=5)


def text_script(*fragments: str, usage: Usage | None = None) -> list[StreamChunk]:
    """A stream of content fragments followed by its done chunk."""
    content = "".join(fragments)
    chunks = [StreamChunk.text(f) for f in fragments]
    chunks.append(StreamChunk.finished(AIResponse(content, "scripted-model", usage=usage)))
    return chunks


def tool_script(
    calls: list[ToolCall],
    content: str = "",
    usage: Usage | None = None,
) -> list[StreamChunk]:
    """A stream that ends with tool calls."""
    chunks = [StreamChunk.text(content)] if content else []
    chunks.extend(StreamChunk.call(c) for c in calls)
    chunks.append(
        StreamChunk.finished(
            AIResponse(content, "scripted-model", tool_calls=list(calls), usage=usage)
        )
    )
    return chunks


# ---------------------------------------------------------------------------
# Fake SDK plumbing
# ---------------------------------------------------------------------------

class RecordingCall:
    """Callable that records its kwargs and returns queued results in order.

    A queued exception is raised instead of returned.
    """

    def __init__(self, *results: Any):
        self.results = list(results)
        self.calls: list[dict] = []

    def __call__(self, **kwargs):
        self.calls.append(kwargs)
        result = self.results.pop(0)
        if isinstance(result, BaseException):
            raise result
        return result

    @property
    def last(self) -> dict:
        return self.calls[-1]


def failing_stream(items: Iterable[Any], exc: BaseException):
    """Yield ``items`` then raise ``exc`` mid-stream."""
    yield from items
    raise exc


def openai_client(*results: Any) -> SimpleNamespace:
    return SimpleNamespace(
        chat=SimpleNamespace(completions=SimpleNamespace(create=RecordingCall(*results)))
    )


def anthropic_client(*results: Any) -> SimpleNamespace:
    return SimpleNamespace(messages=SimpleNamespace(create=RecordingCall(*results)))


def google_client(*, generate=(), stream=()) -> SimpleNamespace:
    return SimpleNamespace(
        models=SimpleNamespace(
            generate_content=RecordingCall(*generate),
            generate_content_stream=RecordingCall(*stream),
        )
    )


def ollama_client(*results: Any) -> SimpleNamespace:
    return SimpleNamespace(chat=RecordingCall(*results))


# ---------------------------------------------------------------------------
# OpenAI chat-completions shapes
# ---------------------------------------------------------------------------

def oa_tool_delta(index, id=None, name=None, arguments=None) -> SimpleNamespace:
    return SimpleNamespace(
        index=index,
        id=id,
        type="function" if id else None,
        function=SimpleNamespace(name=name, arguments=arguments),
    )


def oa_chunk(content=None, tool_calls=None, finish_reason=None) -> SimpleNamespace:
    return SimpleNamespace(
        choices=[
            SimpleNamespace(
                delta=SimpleNamespace(content=content, tool_calls=tool_calls),
                finish_reason=finish_reason,
            )
        ],
        usage=None,
    )


def oa_usage_chunk(prompt: int, completion: int) -> SimpleNamespace:
    return SimpleNamespace(
        choices=[],
        usage=SimpleNamespace(
            prompt_tokens=prompt,
            completion_tokens=completion,
            total_tokens=prompt + completion,
        ),
    )


def oa_completion(content=None, tool_calls=None, usage=None) -> SimpleNamespace:
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content, tool_calls=tool_calls))],
        usage=usage,
    )


def oa_message_call(id, name, arguments: str) -> SimpleNamespace:
    return SimpleNamespace(id=id, type="function", function=SimpleNamespace(name=name, arguments=arguments))


# ---------------------------------------------------------------------------
# Anthropic Messages stream events
# ---------------------------------------------------------------------------

def an_message_start(input_tokens: int) -> SimpleNamespace:
    return SimpleNamespace(
        type="message_start",
        message=SimpleNamespace(usage=SimpleNamespace(input_tokens=input_tokens, output_tokens=1)),
    )


def an_text_start(index: int) -> SimpleNamespace:
    return SimpleNamespace(
        type="content_block_start",
        index=index,
        content_block=SimpleNamespace(type="text", text=""),
    )


def an_tool_start(index: int, id: str, name: str, input=None) -> SimpleNamespace:
    return SimpleNamespace(
        type="content_block_start",
        index=index,
        content_block=SimpleNamespace(type="tool_use", id=id, name=name, input=input or {}),
    )


def an_text_delta(index: int, text: str) -> SimpleNamespace:
    return SimpleNamespace(
        type="content_block_delta",
        index=index,
        delta=SimpleNamespace(type="text_delta", text=text),
    )


def an_json_delta(index: int, partial_json: str) -> SimpleNamespace:
    return SimpleNamespace(
        type="content_block_delta",
        index=index,
        delta=SimpleNamespace(type="input_json_delta", partial_json=partial_json),
    )


def an_stop(index: int) -> SimpleNamespace:
    return SimpleNamespace(type="content_block_stop", index=index)


def an_message_delta(output_tokens: int) -> SimpleNamespace:
    return SimpleNamespace(
        type="message_delta",
        delta=SimpleNamespace(stop_reason="end_turn"),
        usage=SimpleNamespace(output_tokens=output_tokens),
    )


def an_message_stop() -> SimpleNamespace:
    return SimpleNamespace(type="message_stop")


# ---------------------------------------------------------------------------
# Gemini and Ollama shapes
# ---------------------------------------------------------------------------

def gm_part(text=None, function_call=None, thought=None) -> SimpleNamespace:
    return SimpleNamespace(text=text, function_call=function_call, thought=thought)


def gm_call(name: str, args: dict, id=None) -> SimpleNamespace:
    return SimpleNamespace(id=id, name=name, args=args)


def gm_chunk(*parts, usage=None) -> SimpleNamespace:
    return SimpleNamespace(
        candidates=[SimpleNamespace(content=SimpleNamespace(parts=list(parts)))],
        usage_metadata=usage,
    )


def gm_usage(prompt: int, candidates: int) -> SimpleNamespace:
    return SimpleNamespace(
        prompt_token_count=prompt,
        candidates_token_count=candidates,
        total_token_count=prompt + candidates,
    )


def ol_part(content="", tool_calls=None, done=False, prompt_eval_count=None, eval_count=None):
    return SimpleNamespace(
        message=SimpleNamespace(role="assistant", content=content, tool_calls=tool_calls),
        done=done,
        prompt_eval_count=prompt_eval_count,
        eval_count=eval_count,
    )


def ol_call(name: str, arguments: dict) -> SimpleNamespace:
    return SimpleNamespace(function=SimpleNamespace(name=name, arguments=arguments))
