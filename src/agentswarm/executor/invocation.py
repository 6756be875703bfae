"""Command-line construction for one turn of the external CLI.

Pure functions only: given an agent, a prompt and turn options, produce the
argument list. Nothing here spawns a process, so every flag decision is
unit-testable.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path

from agentswarm.config.schema import AgentSpec

DEFAULT_BINARY = "claude"

# Prefix the external CLI uses for tools provided by an MCP server
CONNECTION_TOOL_PREFIX = "mcp__"


@dataclass(frozen=True)
class TurnOptions:
    """Per-turn overrides.

    ``allowed_tools=None`` means "no explicit list". Together with no
    connections it leaves the tools flag out entirely, which is not the
    same as passing an empty list.
    """

    new_session: bool = False
    system_prompt: str | None = None
    allowed_tools: Sequence[str] | None = None
    disallowed_tools: Sequence[str] | None = None
    connections: Sequence[str] | None = None


def connection_tool_name(agent_name: str) -> str:
    """Tool name under which a connected agent's server is exposed."""
    return f"{CONNECTION_TOOL_PREFIX}{agent_name}"


def _unique(items: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(items))


def merge_allowed_tools(
    allowed_tools: Sequence[str] | None, connections: Sequence[str] | None
) -> list[str]:
    """Explicit tools followed by one synthetic tool per connection."""
    tools = list(allowed_tools or [])
    tools.extend(connection_tool_name(c) for c in connections or [])
    return _unique(tools)


def build_invocation_args(
    agent: AgentSpec,
    prompt: str,
    options: TurnOptions | None = None,
    session_id: str | None = None,
    handoff_path: str | Path | None = None,
    binary: str = DEFAULT_BINARY,
) -> list[str]:
    """Build the argument list for one turn.

    Args:
        agent: The agent taking the turn.
        prompt: Prompt text, passed as a single argument.
        options: Per-turn overrides.
        session_id: Session to resume, if the agent has one.
        handoff_path: MCP config file listing the agent's connections.
        binary: Executable name or path.

    Returns:
        The full argv, starting with ``binary``.
    """
    options = options or TurnOptions()
    args = [binary]

    if agent.model:
        args += ["--model", agent.model]

    for directory in agent.additional_directories:
        args += ["--add-dir", str(directory)]

    if handoff_path:
        args += ["--mcp-config", str(handoff_path)]

    if session_id and not options.new_session:
        args += ["--resume", session_id]

    args += ["--output-format", "stream-json", "--verbose", "--print", prompt]

    if options.system_prompt:
        args += ["--append-system-prompt", options.system_prompt]

    if agent.vibe:
        # Vibe wins over any tool list supplied for the turn
        args.append("--dangerously-skip-permissions")
        return args

    allowed = merge_allowed_tools(options.allowed_tools, options.connections)
    if allowed:
        args += ["--allowedTools", ",".join(allowed)]

    disallowed = _unique(options.disallowed_tools or [])
    if disallowed:
        args += ["--disallowedTools", ",".join(disallowed)]

    return args


def options_for_agent(
    agent: AgentSpec,
    new_session: bool = False,
    system_prompt: str | None = None,
) -> TurnOptions:
    """Turn options derived from an agent's own configuration.

    An agent with neither an explicit tool list nor vibe mode gets no tool
    options at all, so the external CLI falls back to its own defaults.
    """
    prompt = system_prompt if system_prompt is not None else agent.system_prompt
    if not agent.has_tool_policy:
        return TurnOptions(
            new_session=new_session,
            system_prompt=prompt,
            disallowed_tools=agent.disallowed_tools or None,
        )
    return TurnOptions(
        new_session=new_session,
        system_prompt=prompt,
        allowed_tools=list(agent.allowed_tools),
        disallowed_tools=agent.disallowed_tools or None,
        connections=list(agent.connections),
    )
