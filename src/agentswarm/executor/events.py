"""Typed events of the external CLI's ``stream-json`` output.

Each output line is one JSON object. Only three shapes matter:

    {"type": "system", "subtype": "init", "session_id": ..., "tools": [...]}
    {"type": "assistant", "message": {"content": [{"type": "text", ...}, ...]}}
    {"type": "result", "result": ..., "session_id": ..., "cost_usd": ..., ...}

Everything else (``user`` tool results, future event types) is ignored.
The parser only classifies; the executor decides what to do with events.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Union

from agentswarm.errors import ParseError
from agentswarm.logging import TRACE, get_logger

log = get_logger("executor.events")


@dataclass(frozen=True)
class TextBlock:
    text: str


@dataclass(frozen=True)
class ToolUseBlock:
    id: str
    name: str
    input: dict[str, Any] = field(default_factory=dict)


ContentBlock = Union[TextBlock, ToolUseBlock]


@dataclass(frozen=True)
class SystemInit:
    session_id: str | None
    tools: tuple[str, ...] = ()


@dataclass(frozen=True)
class AssistantMessage:
    content: tuple[ContentBlock, ...]
    session_id: str | None = None

    @property
    def text(self) -> str:
        return "".join(b.text for b in self.content if isinstance(b, TextBlock))


@dataclass(frozen=True)
class TerminalResult:
    """The final event of a turn.

    Attributes:
        session_id: Conversation id to resume on the next turn.
        result_text: The agent's final answer.
        cost_usd: Cost reported for the turn, if any.
        duration_ms: Wall time reported by the CLI, if any.
        is_error: True if the CLI flagged the turn as failed.
        raw: The undecoded event, for callers that need extra fields.
    """

    session_id: str | None
    result_text: str
    cost_usd: float | None = None
    duration_ms: int | None = None
    is_error: bool = False
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


StreamEvent = Union[SystemInit, AssistantMessage, TerminalResult]


def _content_block(data: Any) -> ContentBlock | None:
    if not isinstance(data, dict):
        return None
    block_type = data.get("type")
    if block_type == "text":
        return TextBlock(text=str(data.get("text", "")))
    if block_type == "tool_use":
        tool_input = data.get("input")
        return ToolUseBlock(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            input=tool_input if isinstance(tool_input, dict) else {},
        )
    return None


def _cost(data: dict[str, Any]) -> float | None:
    for key in ("cost_usd", "total_cost_usd", "total_cost"):
        value = data.get(key)
        if isinstance(value, (int, float)):
            return value
    return None


def parse_event(data: dict[str, Any]) -> StreamEvent | None:
    """Classify one decoded event; returns None for event types we ignore."""
    event_type = data.get("type")

    if event_type == "system" and data.get("subtype") == "init":
        tools = data.get("tools") or []
        return SystemInit(
            session_id=data.get("session_id"),
            tools=tuple(str(t) for t in tools),
        )

    if event_type == "assistant":
        message = data.get("message") or {}
        blocks = message.get("content") if isinstance(message, dict) else None
        content = tuple(
            b for b in (_content_block(raw) for raw in blocks or []) if b is not None
        )
        return AssistantMessage(content=content, session_id=data.get("session_id"))

    if event_type == "result":
        duration = data.get("duration_ms")
        result = data.get("result")
        return TerminalResult(
            session_id=data.get("session_id"),
            result_text=result if isinstance(result, str) else "",
            cost_usd=_cost(data),
            duration_ms=int(duration) if isinstance(duration, (int, float)) else None,
            is_error=bool(data.get("is_error", False)),
            raw=data,
        )

    return None


class EventStreamParser:
    """Incremental parser for one turn's output stream.

    Feed it lines as they arrive; call ``finish()`` once the process ends.

    Example:
        parser = EventStreamParser()
        for line in lines:
            event = parser.feed(line)
        result = parser.finish()  # raises ParseError if no result event
    """

    def __init__(self, on_warning: Callable[[str], None] | None = None) -> None:
        self._on_warning = on_warning
        self._result: TerminalResult | None = None
        self.events_seen = 0
        self.warnings: list[str] = []

    @property
    def result(self) -> TerminalResult | None:
        return self._result

    def feed(self, line: str) -> StreamEvent | None:
        """Decode one line. Malformed JSON is reported as a warning, never raised."""
        line = line.strip()
        if not line:
            return None

        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            self._warn(f"Skipping malformed stream line ({e.msg}): {line[:200]}")
            return None

        if not isinstance(data, dict):
            self._warn(f"Skipping non-object stream line: {line[:200]}")
            return None

        event = parse_event(data)
        if event is None:
            log.log(TRACE, "Ignoring stream event type=%s", data.get("type"))
            return None

        self.events_seen += 1
        if isinstance(event, TerminalResult):
            self._result = event
        return event

    def finish(self) -> TerminalResult:
        """Return the terminal result.

        Raises:
            ParseError: If the stream ended without a result event.
        """
        if self._result is None:
            raise ParseError(
                f"Event stream ended without a result event ({self.events_seen} events parsed)"
            )
        return self._result

    def _warn(self, message: str) -> None:
        self.warnings.append(message)
        log.warning(message)
        if self._on_warning is not None:
            self._on_warning(message)
