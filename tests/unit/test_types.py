import pytest

from toocli.exceptions import (
    AuthFailure,
    ConfigError,
    InvalidResponse,
    NetworkFailure,
    ProviderError,
    RateLimited,
    TooError,
    ToolArgumentParseFailure,
    format_error,
)
from toocli.llm.base import encode_image
from toocli.llm.types import (
    AIResponse,
    ChunkType,
    Message,
    Role,
    StreamChunk,
    ToolDefinition,
    Usage,
    ensure_unique_names,
    split_system,
)

from tests.fakes import ScriptedProvider


def test_message_roles_are_coerced():
    assert Message("user", "hi").role is Role.USER
    with pytest.raises(ValueError):
        Message("robot", "hi")


def test_empty_tool_call_list_becomes_none():
    assert AIResponse("x", "m", tool_calls=[]).tool_calls is None


def test_usage_adds():
    assert Usage(1, 2, 3) + Usage(10, 20, 30) == Usage(11, 22, 33)


def test_chunk_constructors():
    assert StreamChunk.text("a").type is ChunkType.CONTENT
    done = StreamChunk.finished(AIResponse("a", "m"))
    assert done.done
    assert not StreamChunk.text("a").done


def test_split_system_joins_and_preserves_turn_order():
    system, turns = split_system([
        Message.system("one"),
        Message.user("u1"),
        Message.system("two"),
        Message.assistant("a1"),
    ])

    assert system == "one\n\ntwo"
    assert [m.content for m in turns] == ["u1", "a1"]


def test_split_system_without_system_messages():
    assert split_system([Message.user("u")])[0] is None


def test_duplicate_tool_names_are_rejected():
    tools = [ToolDefinition("a", "x"), ToolDefinition("a", "y")]

    with pytest.raises(ValueError, match="Duplicate tool name 'a'"):
        ensure_unique_names(tools)


def test_duplicate_tool_names_are_rejected_before_any_request():
    provider = ScriptedProvider()

    with pytest.raises(ValueError):
        provider._tools_for_request([ToolDefinition("a", "x"), ToolDefinition("a", "y")])


@pytest.mark.parametrize(
    "cls", [AuthFailure, RateLimited, NetworkFailure, InvalidResponse],
)
def test_provider_failures_share_a_base(cls):
    exc = cls("nope", provider="X")

    assert isinstance(exc, ProviderError)
    assert isinstance(exc, TooError)
    assert exc.provider == "X"


def test_format_error_uses_the_kind():
    assert format_error(RateLimited("slow down")) == "[rate_limit] slow down"
    assert format_error(ConfigError("missing")) == "[config] missing"
    assert format_error(ValueError()) == "[ValueError] ValueError"


def test_parse_failure_message_is_truncated():
    exc = ToolArgumentParseFailure("c1", "write_file", "x" * 200)

    assert "write_file" in str(exc)
    assert "..." in str(exc)


def test_encode_image_from_data_url():
    assert encode_image("data:image/gif;base64,R0lG") == ("image/gif", "R0lG")


def test_encode_image_from_file(tmp_path):
    path = tmp_path / "photo.jpg"
    path.write_bytes(b"ABC")

    assert encode_image(str(path)) == ("image/jpeg", "QUJD")


def test_encode_image_missing_file(tmp_path):
    with pytest.raises(ValueError, match="Could not read image"):
        encode_image(str(tmp_path / "missing.png"))


def test_chat_stream_requires_a_done_chunk():
    provider = ScriptedProvider(scripts=[[StreamChunk.text("a")]])

    with pytest.raises(InvalidResponse):
        provider.chat_stream([Message.user("x")], None, lambda c: None)
