import json
import logging

import pytest

from toocli.exceptions import ToolArgumentParseFailure
from toocli.llm.accumulator import ToolCallAccumulator, parse_arguments


ARGS = {"filePath": "src/main.py", "content": "print('hi')\n", "nested": {"a": [1, 2]}}


def _feed_split(acc, text, sizes, call_id="call_1", index=0):
    pos = 0
    for size in sizes:
        acc.feed(index=index, arguments_delta=text[pos:pos + size])
        pos += size
    acc.feed(index=index, arguments_delta=text[pos:])


# ---------------------------------------------------------------------------
# parse_arguments
# ---------------------------------------------------------------------------

def test_parse_empty_text_is_no_arguments():
    assert parse_arguments("") == {}
    assert parse_arguments("   ") == {}


def test_parse_malformed_degrades_to_empty(caplog):
    with caplog.at_level(logging.WARNING, logger="toocli"):
        assert parse_arguments("{invalid", call_id="c1", tool_name="read_file") == {}
    assert "read_file" in caplog.text


def test_parse_non_object_is_a_failure():
    assert parse_arguments("[1, 2]") == {}
    with pytest.raises(ToolArgumentParseFailure):
        parse_arguments("42", strict=True)


def test_parse_strict_raises_with_context():
    with pytest.raises(ToolArgumentParseFailure) as info:
        parse_arguments("{invalid", strict=True, call_id="c9", tool_name="write_file")
    assert info.value.call_id == "c9"
    assert info.value.tool_name == "write_file"
    assert info.value.raw == "{invalid"


# ---------------------------------------------------------------------------
# Incremental discipline
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("sizes", [[], [1], [3, 5, 1], [1] * 20])
def test_fragmentation_does_not_change_result(sizes):
    text = json.dumps(ARGS)
    acc = ToolCallAccumulator()
    acc.feed(index=0, call_id="call_1", name="write_file")
    _feed_split(acc, text, sizes)

    [call] = acc.complete()

    assert call.id == "call_1"
    assert call.name == "write_file"
    assert call.arguments == ARGS


def test_index_only_deltas_attach_to_the_call_opened_at_that_index():
    acc = ToolCallAccumulator()
    acc.feed(index=0, call_id="call_a", name="read_file")
    acc.feed(index=1, call_id="call_b", name="list_files")
    acc.feed(index=1, arguments_delta='{"dirPath": ')
    acc.feed(index=0, arguments_delta='{"filePath": "a.txt"}')
    acc.feed(index=1, arguments_delta='"src"}')

    calls = acc.complete()

    assert [c.id for c in calls] == ["call_a", "call_b"]
    assert calls[0].arguments == {"filePath": "a.txt"}
    assert calls[1].arguments == {"dirPath": "src"}


def test_position_keyed_call_is_rekeyed_when_its_id_arrives():
    acc = ToolCallAccumulator()
    acc.feed(index=0, arguments_delta='{"a": ')
    acc.feed(index=0, call_id="call_late", name="echo", arguments_delta="1}")

    assert acc.pending == ["call_late"]
    [call] = acc.complete()
    assert call.id == "call_late"
    assert call.arguments == {"a": 1}


def test_calls_without_an_id_get_a_synthesized_one():
    acc = ToolCallAccumulator()
    acc.feed(index=0, name="echo", arguments_delta="{}")

    [call] = acc.complete()

    assert call.id.startswith("call_")
    assert call.name == "echo"


def test_nothing_is_emitted_before_completion():
    acc = ToolCallAccumulator()
    acc.feed(index=0, call_id="call_1", name="echo", arguments_delta='{"text": "x"}')

    assert acc.calls() == []
    assert acc.pending == ["call_1"]


def test_completion_boundary_is_not_repeated():
    acc = ToolCallAccumulator()
    acc.feed(index=0, call_id="call_1", name="echo", arguments_delta="{}")

    assert len(acc.complete()) == 1
    assert acc.complete() == []
    assert len(acc.calls()) == 1


def test_malformed_fragments_degrade_to_empty_arguments():
    acc = ToolCallAccumulator()
    acc.feed(index=0, call_id="call_1", name="read_file", arguments_delta="{invalid")

    [call] = acc.complete()

    assert call.arguments == {}


def test_strict_mode_raises_on_malformed_fragments():
    acc = ToolCallAccumulator(strict=True)
    acc.feed(index=0, call_id="call_1", name="read_file", arguments_delta="{invalid")

    with pytest.raises(ToolArgumentParseFailure):
        acc.complete()


def test_delta_after_completion_is_ignored():
    acc = ToolCallAccumulator()
    acc.feed(index=0, call_id="call_1", name="echo", arguments_delta='{"text": "a"}')
    acc.complete()
    acc.feed(call_id="call_1", arguments_delta='{"text": "b"}')

    assert acc.calls()[0].arguments == {"text": "a"}


# ---------------------------------------------------------------------------
# Per-call completion (block-structured streams)
# ---------------------------------------------------------------------------

def test_seed_is_used_when_no_fragments_follow():
    acc = ToolCallAccumulator()
    acc.start("toolu_1", "read_file", index=1, seed={"filePath": "a.txt"})

    [call] = acc.complete("toolu_1")

    assert call.arguments == {"filePath": "a.txt"}


def test_fragments_override_empty_seed():
    acc = ToolCallAccumulator()
    acc.start("toolu_1", "read_file", index=1, seed=None)
    acc.feed(call_id="toolu_1", arguments_delta='{"filePath": ')
    acc.feed(call_id="toolu_1", arguments_delta='"b.txt"}')

    [call] = acc.complete("toolu_1")

    assert call.arguments == {"filePath": "b.txt"}


def test_complete_by_id_leaves_other_calls_pending():
    acc = ToolCallAccumulator()
    acc.start("toolu_1", "a")
    acc.start("toolu_2", "b")

    [call] = acc.complete("toolu_2")

    assert call.id == "toolu_2"
    assert acc.pending == ["toolu_1"]


# ---------------------------------------------------------------------------
# Atomic discipline
# ---------------------------------------------------------------------------

def test_add_block_accepts_structured_arguments():
    acc = ToolCallAccumulator()
    call = acc.add_block("fc_1", "list_files", {"dirPath": "."})

    assert call.arguments == {"dirPath": "."}
    assert acc.calls() == [call]


def test_add_block_parses_string_arguments():
    acc = ToolCallAccumulator()
    call = acc.add_block("fc_1", "echo", '{"text": "hi"}')

    assert call.arguments == {"text": "hi"}


def test_add_block_synthesizes_missing_and_duplicate_ids():
    acc = ToolCallAccumulator()
    first = acc.add_block(None, "echo", {})
    second = acc.add_block("same", "echo", {})
    third = acc.add_block("same", "echo", {})

    ids = [first.id, second.id, third.id]
    assert len(set(ids)) == 3
    assert second.id == "same"


def test_calls_are_reported_in_first_seen_order():
    acc = ToolCallAccumulator()
    acc.add_block("c1", "one", {})
    acc.add_block("c2", "two", {})
    acc.add_block("c3", "three", {})

    assert [c.name for c in acc.calls()] == ["one", "two", "three"]
    assert len(acc) == 3
