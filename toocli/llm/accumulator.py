"""
Tool-call accumulation for streaming providers.

Vendors deliver tool calls in one of two disciplines:

- **Incremental**: identity and name arrive first, the JSON argument text
  arrives split across any number of later deltas. Fragments are correlated
  by call id, or by stream position (``index``) until an id is known.
- **Atomic**: the call arrives as one fully formed block with structured
  arguments.

Both feed the same per-call state machine. A call is ``Pending`` while its
argument fragments are collected and becomes ``Complete`` at a
provider-specific boundary, where the concatenated fragments are parsed
exactly once. Atomic blocks enter directly as ``Complete``.

An accumulator belongs to a single response and is discarded with it.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from typing import Any, Union

from toocli.exceptions import ToolArgumentParseFailure
from toocli.llm.types import ToolCall
from toocli.logger import get_logger


@dataclass
class Pending:
    """A call whose arguments are still arriving."""

    call_id: str
    name: str
    fragments: list[str] = field(default_factory=list)
    seed: dict[str, Any] | None = None


@dataclass
class Complete:
    """A call whose arguments have been parsed."""

    call_id: str
    name: str
    arguments: dict[str, Any]

    def to_tool_call(self) -> ToolCall:
        return ToolCall(id=self.call_id, name=self.name, arguments=self.arguments)


CallState = Union[Pending, Complete]


def new_call_id() -> str:
    """Synthesize a call id for vendors that do not supply one."""
    return f"call_{uuid.uuid4().hex[:12]}"


def parse_arguments(
    raw: str,
    *,
    strict: bool = False,
    call_id: str = "",
    tool_name: str = "",
) -> dict[str, Any]:
    """
    Parse accumulated argument text into a dict.

    Empty text means "no arguments". Anything that is not a JSON object is
    a parse failure: with ``strict`` it raises, otherwise it degrades to an
    empty dict and logs a warning.

    Raises:
        ToolArgumentParseFailure: On failure when ``strict`` is set.
    """
    text = raw.strip()
    if not text:
        return {}

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        parsed = None

    if isinstance(parsed, dict):
        return parsed

    if strict:
        raise ToolArgumentParseFailure(call_id, tool_name, raw)

    get_logger().warning(
        f"Unparseable arguments for tool '{tool_name}' (call {call_id}); "
        "using empty arguments."
    )
    return {}


class ToolCallAccumulator:
    """
    Reconstructs complete ``ToolCall`` values for one response.

    Calls are reported in the order they were first seen.
    """

    def __init__(self, strict: bool = False):
        self._strict = strict
        self._states: dict[str, CallState] = {}
        self._index_keys: dict[int, str] = {}
        self._last_key: str | None = None

    # ------------------------------------------------------------------
    # Incremental discipline
    # ------------------------------------------------------------------

    def start(
        self,
        call_id: str,
        name: str,
        index: int | None = None,
        seed: dict[str, Any] | None = None,
    ) -> None:
        """
        Open a pending call whose identity is already known.

        ``seed`` holds arguments delivered with the opening block; they are
        used as-is when no argument fragments follow.
        """
        key = self._resolve_key(index, call_id)
        state = self._states.get(key)
        if state is None:
            self._states[key] = Pending(call_id=call_id, name=name, seed=seed)
        elif isinstance(state, Pending):
            state.name = state.name or name
            if seed is not None:
                state.seed = seed
        self._last_key = key

    def feed(
        self,
        index: int | None = None,
        call_id: str | None = None,
        name: str | None = None,
        arguments_delta: str | None = None,
    ) -> None:
        """Record one incremental delta for a call."""
        key = self._resolve_key(index, call_id)
        state = self._states.get(key)

        if state is None:
            state = Pending(call_id=call_id or "", name=name or "")
            self._states[key] = state
        elif isinstance(state, Complete):
            get_logger().warning(
                f"Ignoring delta for already completed tool call '{state.call_id}'."
            )
            return

        if call_id and not state.call_id:
            state.call_id = call_id
        if name and not state.name:
            state.name = name
        if arguments_delta:
            state.fragments.append(arguments_delta)
        self._last_key = key

    def complete(self, call_id: str | None = None) -> list[ToolCall]:
        """
        Finalize pending calls at a completion boundary.

        Finalizes the call identified by ``call_id`` or, when omitted, every
        pending call. Each transition parses the argument text exactly once.

        Returns:
            The newly completed calls, in first-seen order.
        """
        if call_id is None:
            keys = [k for k, s in self._states.items() if isinstance(s, Pending)]
        else:
            key = call_id if call_id in self._states else self._find_key(call_id)
            keys = [key] if key is not None else []

        finished: list[ToolCall] = []
        for key in keys:
            state = self._states[key]
            if not isinstance(state, Pending):
                continue
            done = self._finalize(state)
            self._states[key] = done
            finished.append(done.to_tool_call())
        return finished

    # ------------------------------------------------------------------
    # Atomic discipline
    # ------------------------------------------------------------------

    def add_block(
        self,
        call_id: str | None,
        name: str,
        arguments: Any,
    ) -> ToolCall:
        """Register a call that arrived fully formed."""
        if isinstance(arguments, str):
            arguments = parse_arguments(
                arguments, strict=self._strict, call_id=call_id or "", tool_name=name
            )
        else:
            arguments = dict(arguments or {})

        if not call_id or call_id in self._states:
            call_id = new_call_id()
        done = Complete(call_id=call_id, name=name, arguments=arguments)
        self._states[call_id] = done
        self._last_key = call_id
        return done.to_tool_call()

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def calls(self) -> list[ToolCall]:
        """Return every completed call in first-seen order."""
        return [s.to_tool_call() for s in self._states.values() if isinstance(s, Complete)]

    @property
    def pending(self) -> list[str]:
        """Keys of calls still waiting for their completion boundary."""
        return [k for k, s in self._states.items() if isinstance(s, Pending)]

    def __len__(self) -> int:
        return len(self._states)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _finalize(self, state: Pending) -> Complete:
        call_id = state.call_id or new_call_id()
        if state.fragments:
            arguments = parse_arguments(
                "".join(state.fragments),
                strict=self._strict,
                call_id=call_id,
                tool_name=state.name,
            )
        elif state.seed is not None:
            arguments = dict(state.seed)
        else:
            arguments = {}
        if not state.name:
            get_logger().warning(f"Tool call '{call_id}' completed without a name.")
        return Complete(call_id=call_id, name=state.name, arguments=arguments)

    def _find_key(self, call_id: str) -> str | None:
        for key, state in self._states.items():
            if state.call_id == call_id:
                return key
        return None

    def _resolve_key(self, index: int | None, call_id: str | None) -> str:
        """
        Map a delta to its accumulator key.

        An id always wins. A position-only delta resolves through the index
        table; a call first seen by position is re-keyed once its id arrives.
        A delta with neither belongs to the most recent call.
        """
        if call_id:
            if index is not None:
                known = self._index_keys.get(index)
                if known is not None and known != call_id and self._is_placeholder(known):
                    self._rekey(known, call_id)
                self._index_keys[index] = call_id
            return call_id

        if index is not None:
            key = self._index_keys.get(index)
            if key is None:
                key = f"#{index}"
                self._index_keys[index] = key
            return key

        return self._last_key or "#0"

    @staticmethod
    def _is_placeholder(key: str) -> bool:
        return key.startswith("#")

    def _rekey(self, old: str, new: str) -> None:
        state = self._states.get(old)
        if state is None:
            return
        state.call_id = new
        self._states = {(new if k == old else k): v for k, v in self._states.items()}
        if self._last_key == old:
            self._last_key = new
