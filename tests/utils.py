"""Shared test utilities for agentswarm tests."""

from __future__ import annotations

import json
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from agentswarm.config.schema import AgentSpec
from agentswarm.executor.runner import ProcessOutcome


def make_agent(name: str = "test_instance", directory: Path | None = None, **kwargs: Any) -> AgentSpec:
    """Create an AgentSpec with sensible defaults."""
    return AgentSpec(name=name, working_directory=directory or Path("."), **kwargs)


def stream_lines(
    session_id: str = "test-session-123",
    result: str = "Test result",
    cost: float = 0.01,
    duration: int = 500,
    include_tool_call: bool = False,
    include_result: bool = True,
) -> list[str]:
    """Build the stream-json lines of one turn."""
    events: list[dict[str, Any]] = [
        {"type": "system", "subtype": "init", "session_id": session_id, "tools": ["Tool1", "Tool2"]},
        {
            "type": "assistant",
            "message": {
                "id": "msg_123",
                "type": "message",
                "role": "assistant",
                "content": [{"type": "text", "text": "Processing..."}],
            },
            "session_id": session_id,
        },
    ]
    if include_tool_call:
        events.append(
            {
                "type": "assistant",
                "message": {
                    "id": "msg_124",
                    "content": [
                        {"type": "tool_use", "id": "tool_123", "name": "Bash",
                         "input": {"command": "ls -la"}},
                    ],
                },
                "session_id": session_id,
            }
        )
    if include_result:
        events.append(
            {
                "type": "result",
                "subtype": "success",
                "cost_usd": cost,
                "is_error": False,
                "duration_ms": duration,
                "result": result,
                "total_cost": cost,
                "session_id": session_id,
            }
        )
    return [json.dumps(e) + "\n" for e in events]


@dataclass
class RunnerCall:
    args: list[str]
    cwd: str | None
    env: dict[str, str] | None


@dataclass
class FakeRunner:
    """ProcessRunner that replays canned stdout lines instead of spawning."""

    lines: Sequence[str] = field(default_factory=stream_lines)
    exit_code: int = 0
    stderr: str = ""
    error: BaseException | None = None
    calls: list[RunnerCall] = field(default_factory=list)

    async def run(
        self,
        args: Sequence[str],
        cwd: str | None,
        on_line: Callable[[str], None],
        env: dict[str, str] | None = None,
    ) -> ProcessOutcome:
        self.calls.append(RunnerCall(list(args), cwd, env))
        if self.error is not None:
            raise self.error
        for line in self.lines:
            on_line(line)
        return ProcessOutcome(exit_code=self.exit_code, stderr=self.stderr, duration_ms=1.0)

    @property
    def last_args(self) -> list[str]:
        return self.calls[-1].args


def flag_value(args: Sequence[str], flag: str) -> str:
    """Value following ``flag`` in an argv."""
    return args[list(args).index(flag) + 1]
