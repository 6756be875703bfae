"""agentswarm: a swarm of coding-assistant agents that delegate work over MCP."""

__version__ = "0.1.0"

# Public API
from agentswarm.config import AgentSpec, RunGraph, load_run_graph
from agentswarm.errors import (
    BeforeCommandError,
    ConfigurationError,
    ExecutionError,
    ParseError,
    ServerStartError,
    SwarmError,
)
from agentswarm.executor import Executor, TerminalResult, TurnOptions, build_invocation_args
from agentswarm.mcp import CapabilityServer
from agentswarm.orchestrator import Orchestrator
from agentswarm.session import RunContext, SessionLog

__all__ = [
    # Config
    "AgentSpec",
    "RunGraph",
    "load_run_graph",
    # Errors
    "SwarmError",
    "ConfigurationError",
    "ExecutionError",
    "ParseError",
    "BeforeCommandError",
    "ServerStartError",
    # Execution
    "Executor",
    "TerminalResult",
    "TurnOptions",
    "build_invocation_args",
    # Serving
    "CapabilityServer",
    "Orchestrator",
    # Session
    "RunContext",
    "SessionLog",
]
