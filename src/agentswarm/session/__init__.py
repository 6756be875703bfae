"""Run context and session transcript."""

from agentswarm.session.context import (
    RunContext,
    derive_session_path,
    sanitize_identity,
    swarm_home,
)
from agentswarm.session.log import (
    AgentThinking,
    ErrorOccurred,
    ExecutorStarted,
    LogEntry,
    PromptSent,
    SessionLog,
    ToolInvoked,
    TurnCompleted,
)

__all__ = [
    "RunContext",
    "derive_session_path",
    "sanitize_identity",
    "swarm_home",
    "LogEntry",
    "ExecutorStarted",
    "PromptSent",
    "AgentThinking",
    "ToolInvoked",
    "TurnCompleted",
    "ErrorOccurred",
    "SessionLog",
]
