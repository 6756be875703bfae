"""Per-agent turn execution against the external coding-assistant CLI.

The executor builds the command line (invocation), runs it (runner) and
classifies the streamed output (events).
"""

from agentswarm.executor.events import (
    AssistantMessage,
    EventStreamParser,
    StreamEvent,
    SystemInit,
    TerminalResult,
    TextBlock,
    ToolUseBlock,
    parse_event,
)
from agentswarm.executor.executor import Executor, Session
from agentswarm.executor.invocation import (
    TurnOptions,
    build_invocation_args,
    connection_tool_name,
    options_for_agent,
)
from agentswarm.executor.runner import ProcessOutcome, ProcessRunner, SubprocessRunner

__all__ = [
    "Executor",
    "Session",
    "TurnOptions",
    "build_invocation_args",
    "connection_tool_name",
    "options_for_agent",
    "ProcessOutcome",
    "ProcessRunner",
    "SubprocessRunner",
    "EventStreamParser",
    "StreamEvent",
    "SystemInit",
    "AssistantMessage",
    "TerminalResult",
    "TextBlock",
    "ToolUseBlock",
    "parse_event",
]
