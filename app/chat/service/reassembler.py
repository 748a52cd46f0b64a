# app/chat/service/reassembler.py
"""
Incremental reassembly of a streamed chat-completions response.

The upstream body is a sequence of ``data: {json}`` lines separated by blank
lines and terminated by ``data: [DONE]``. Bytes arrive in arbitrary chunks, so
``SSELineBuffer`` only ever releases complete lines. ``StreamReassembler``
turns those lines into events for the chat service: text to forward, text
appended to the assistant message, and (exactly once) the tool calls that
finished streaming.
"""

import codecs
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Union

from app.chat.entity.chat import ToolCallFragment, ToolInvocation
from app.core.logger import get_logger

logger = get_logger("StreamReassembler")

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"
TOOL_CALLS_FINISH_REASON = "tool_calls"


def content_event_line(text: str) -> str:
    """A ``data:`` line carrying only a content delta, in the upstream shape."""
    payload = {"choices": [{"index": 0, "delta": {"content": text}, "finish_reason": None}]}
    return f"{DATA_PREFIX} {json.dumps(payload, ensure_ascii=False)}"


def done_line() -> str:
    return f"{DATA_PREFIX} {DONE_SENTINEL}"


class SSELineBuffer:
    """Splits a byte stream into complete text lines; partial lines stay buffered."""

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending = ""

    def feed(self, chunk: bytes) -> List[str]:
        self._pending += self._decoder.decode(chunk)
        *complete, self._pending = self._pending.split("\n")
        return [line.rstrip("\r") for line in complete]

    def flush(self) -> List[str]:
        """Release whatever is left once the stream has ended."""
        self._pending += self._decoder.decode(b"", final=True)
        rest, self._pending = self._pending, ""
        rest = rest.rstrip("\r")
        return [rest] if rest else []


class ToolCallAccumulator:
    """Fragments of in-flight tool calls, keyed by their stream ``index``."""

    def __init__(self):
        self._fragments: Dict[int, ToolCallFragment] = {}

    def __len__(self) -> int:
        return len(self._fragments)

    def fragment_at(self, index: int) -> ToolCallFragment:
        """Return the fragment for ``index``, creating an empty one the first time."""
        fragment = self._fragments.get(index)
        if fragment is None:
            fragment = ToolCallFragment(index=index)
            self._fragments[index] = fragment
        return fragment

    def apply(self, delta: Dict[str, Any]) -> None:
        index = delta.get("index")
        if not isinstance(index, int):
            index = len(self._fragments)
        fragment = self.fragment_at(index)
        if delta.get("id"):
            fragment.id = delta["id"]
        function = delta.get("function") or {}
        if function.get("name"):
            fragment.name = function["name"]
        # Argument text is partial JSON; append only, parse at completion.
        arguments = function.get("arguments")
        if arguments:
            fragment.arguments += arguments

    def complete(self) -> List[ToolInvocation]:
        """Parse every named fragment, in index order. Unparseable ones are logged and skipped."""
        invocations: List[ToolInvocation] = []
        for index in sorted(self._fragments):
            fragment = self._fragments[index]
            if not fragment.name:
                continue
            try:
                arguments = json.loads(fragment.arguments)
            except json.JSONDecodeError:
                logger.warning(
                    f"Skipping tool call index={index} name={fragment.name}: "
                    f"malformed arguments (preview={fragment.arguments[:40]!r})"
                )
                continue
            if not isinstance(arguments, dict):
                logger.warning(f"Skipping tool call index={index} name={fragment.name}: arguments are not an object")
                continue
            invocations.append(
                ToolInvocation(index=index, name=fragment.name, arguments=arguments, call_id=fragment.id)
            )
        return invocations


@dataclass(frozen=True)
class ForwardLine:
    """A line to pass on to the guest unchanged (or rewritten to drop tool-call deltas)."""
    line: str


@dataclass(frozen=True)
class AssistantTextUpdated:
    delta: str
    text: str


@dataclass(frozen=True)
class ToolCallsCompleted:
    invocations: List[ToolInvocation] = field(default_factory=list)


@dataclass(frozen=True)
class StreamEnded:
    pass


StreamEvent = Union[ForwardLine, AssistantTextUpdated, ToolCallsCompleted, StreamEnded]


class StreamReassembler:
    """
    State for one model response. Not shared between turns.

    Feed it raw bytes with ``feed`` and call ``close`` when the transport is
    exhausted; both return the events produced so far, in stream order.
    """

    def __init__(self):
        self.assistant_text = ""
        self.tool_calls = ToolCallAccumulator()
        self.tool_calls_completed = False
        self.ended = False
        self._lines = SSELineBuffer()

    def feed(self, chunk: bytes) -> List[StreamEvent]:
        return self._process(self._lines.feed(chunk))

    def close(self) -> List[StreamEvent]:
        events = self._process(self._lines.flush())
        if not self.ended:
            self.ended = True
            events.append(StreamEnded())
        return events

    def append_tool_results(self, messages: Iterable[str]) -> str:
        """Append result messages to the assistant text, each after a blank line. Returns the added text."""
        added = ""
        for message in messages:
            if not message:
                continue
            separator = "\n\n" if (self.assistant_text or added) else ""
            added += separator + message
        self.assistant_text += added
        return added

    def _process(self, lines: Iterable[str]) -> List[StreamEvent]:
        events: List[StreamEvent] = []
        for line in lines:
            if self.ended:
                break
            events.extend(self._handle_line(line))
        return events

    def _handle_line(self, line: str) -> List[StreamEvent]:
        if not line.startswith(DATA_PREFIX):
            # Blank separators, comments and other SSE fields.
            return [ForwardLine(line)] if line.startswith(":") else []

        data = line[len(DATA_PREFIX):].strip()
        if data == DONE_SENTINEL:
            self.ended = True
            return [StreamEnded()]

        try:
            payload = json.loads(data)
        except json.JSONDecodeError:
            logger.debug(f"Ignoring undecodable event line: {data[:40]!r}")
            return []
        if not isinstance(payload, dict):
            return []

        events: List[StreamEvent] = []
        choices = payload.get("choices") or []
        choice = choices[0] if choices and isinstance(choices[0], dict) else {}
        delta = choice.get("delta") or {}
        content = delta.get("content") if isinstance(delta.get("content"), str) else None
        tool_deltas = delta.get("tool_calls")

        if tool_deltas:
            for tool_delta in tool_deltas:
                if isinstance(tool_delta, dict):
                    self.tool_calls.apply(tool_delta)
            if content:
                events.append(ForwardLine(content_event_line(content)))
        else:
            events.append(ForwardLine(line))

        if content:
            self.assistant_text += content
            events.append(AssistantTextUpdated(delta=content, text=self.assistant_text))

        if choice.get("finish_reason") == TOOL_CALLS_FINISH_REASON:
            events.extend(self._complete_tool_calls())
        return events

    def _complete_tool_calls(self) -> List[StreamEvent]:
        if self.tool_calls_completed:
            logger.warning("Duplicate tool_calls finish marker ignored")
            return []
        self.tool_calls_completed = True
        return [ToolCallsCompleted(invocations=self.tool_calls.complete())]
