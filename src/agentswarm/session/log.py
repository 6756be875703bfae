"""Append-only transcript shared by every agent of a run.

Two files are written side by side in the session directory:

- ``session.log``: one human-readable line per entry, e.g.
  ``[2026-01-02 12:00:00.000] INFO -- lead -> backend: Fix the tests``
- ``session.log.json``: the same entries as JSON lines

Several executors (one per capability server thread) append concurrently,
so each entry is formatted and written under one lock. Newlines in payloads
are escaped so every physical line of ``session.log`` is a whole entry.
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import IO, Any, ClassVar


def _now() -> datetime:
    return datetime.now().astimezone()


def escape_text(text: str) -> str:
    """Escape backslashes and line breaks so text fits on one line."""
    return text.replace("\\", "\\\\").replace("\r", "\\r").replace("\n", "\\n")


@dataclass
class LogEntry:
    """Base entry: who acted, towards whom, and when."""

    agent: str
    counterpart: str
    timestamp: datetime = field(default_factory=_now, kw_only=True)

    kind: ClassVar[str] = "entry"
    level: ClassVar[str] = "INFO"

    def body(self) -> str:
        raise NotImplementedError

    def format(self) -> str:
        stamp = self.timestamp.strftime("%Y-%m-%d %H:%M:%S.") + f"{self.timestamp.microsecond // 1000:03d}"
        return f"[{stamp}] {self.level} -- {self.body()}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "timestamp": self.timestamp.isoformat(),
            "agent": self.agent,
            "counterpart": self.counterpart,
        }


@dataclass
class ExecutorStarted(LogEntry):
    """An executor was created for ``agent``; ``counterpart`` is its default caller."""

    kind: ClassVar[str] = "executor_started"

    def body(self) -> str:
        return f"Started executor for instance: {self.agent}"


@dataclass
class PromptSent(LogEntry):
    """A prompt dispatched to ``agent`` by ``counterpart``."""

    text: str = ""
    kind: ClassVar[str] = "prompt_sent"

    def body(self) -> str:
        return f"{self.counterpart} -> {self.agent}: {escape_text(self.text)}"

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "text": self.text}


@dataclass
class AgentThinking(LogEntry):
    """Streamed assistant text observed mid-turn."""

    text: str = ""
    kind: ClassVar[str] = "agent_thinking"

    def body(self) -> str:
        return f"{self.agent} is thinking: {escape_text(self.text)}"

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "text": self.text}


@dataclass
class ToolInvoked(LogEntry):
    tool_name: str = ""
    tool_id: str = ""
    arguments: dict[str, Any] = field(default_factory=dict)
    kind: ClassVar[str] = "tool_invoked"

    def body(self) -> str:
        args = json.dumps(self.arguments, separators=(",", ":"), ensure_ascii=False, default=str)
        return (
            f"Tool call from {self.agent} -> Tool: {self.tool_name}, "
            f"ID: {self.tool_id}, Arguments: {escape_text(args)}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "tool_name": self.tool_name,
            "tool_id": self.tool_id,
            "arguments": self.arguments,
        }


@dataclass
class TurnCompleted(LogEntry):
    """Terminal result returned by ``agent`` to ``counterpart``."""

    result_text: str = ""
    cost_usd: float | None = None
    duration_ms: int | None = None
    kind: ClassVar[str] = "turn_completed"

    def body(self) -> str:
        cost = self.cost_usd if self.cost_usd is not None else 0
        duration = self.duration_ms if self.duration_ms is not None else 0
        return (
            f"(${cost} - {duration}ms) {self.agent} -> {self.counterpart}: "
            f"{escape_text(self.result_text)}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "result_text": self.result_text,
            "cost_usd": self.cost_usd,
            "duration_ms": self.duration_ms,
        }


@dataclass
class ErrorOccurred(LogEntry):
    message: str = ""
    kind: ClassVar[str] = "error_occurred"
    level: ClassVar[str] = "ERROR"

    def body(self) -> str:
        return f"{self.agent} -> {self.counterpart}: {escape_text(self.message)}"

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "message": self.message}


class SessionLog:
    """Thread-safe appender for the run transcript."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.json_path = self.path.with_name(self.path.name + ".json")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._text: IO[str] | None = open(self.path, "a", encoding="utf-8")
        self._json: IO[str] | None = open(self.json_path, "a", encoding="utf-8")

    def append(self, entry: LogEntry) -> None:
        """Write one entry to both files. Safe to call from any thread."""
        with self._lock:
            if self._text is None or self._json is None:
                raise ValueError(f"Session log {self.path} is closed")
            line = entry.format()
            record = json.dumps(entry.to_dict(), ensure_ascii=False, default=str)
            self._text.write(line + "\n")
            self._text.flush()
            self._json.write(record + "\n")
            self._json.flush()

    def executor_started(self, agent: str, caller: str) -> None:
        self.append(ExecutorStarted(agent, caller))

    def prompt_sent(self, agent: str, caller: str, text: str) -> None:
        self.append(PromptSent(agent, caller, text=text))

    def thinking(self, agent: str, caller: str, text: str) -> None:
        self.append(AgentThinking(agent, caller, text=text))

    def tool_invoked(
        self, agent: str, caller: str, tool_name: str, tool_id: str, arguments: dict[str, Any]
    ) -> None:
        self.append(
            ToolInvoked(agent, caller, tool_name=tool_name, tool_id=tool_id, arguments=arguments)
        )

    def turn_completed(
        self,
        agent: str,
        caller: str,
        result_text: str,
        cost_usd: float | None,
        duration_ms: int | None,
    ) -> None:
        self.append(
            TurnCompleted(
                agent, caller, result_text=result_text, cost_usd=cost_usd, duration_ms=duration_ms
            )
        )

    def error(self, agent: str, caller: str, message: str) -> None:
        self.append(ErrorOccurred(agent, caller, message=message))

    def close(self) -> None:
        with self._lock:
            for handle in (self._text, self._json):
                if handle is not None:
                    handle.close()
            self._text = None
            self._json = None

    def __enter__(self) -> SessionLog:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
