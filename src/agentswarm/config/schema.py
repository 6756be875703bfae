"""Configuration schema dataclasses for agentswarm.

A swarm file describes a set of agents and which of them may delegate to
which. The loader turns it into an immutable RunGraph of AgentSpecs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from agentswarm.errors import ConfigurationError


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str | None = None  # DEBUG, INFO, WARNING, ERROR
    verbose: int | None = None  # 0-4, overrides level
    file: str | None = None  # Log file path


@dataclass(frozen=True)
class MCPServerConfig:
    """An extra MCP server handed through to an agent's external CLI.

    Supports three transport types:
        - stdio: Spawns a subprocess (requires command)
        - http: Connects to a streamable HTTP endpoint (requires url)
        - sse: Connects to an SSE endpoint (requires url)
    """

    name: str
    transport: str = "stdio"  # "stdio", "http", or "sse"
    command: str | None = None
    args: tuple[str, ...] = ()
    env: dict[str, str] = field(default_factory=dict)
    url: str | None = None
    headers: dict[str, str] = field(default_factory=dict)

    def to_handoff_entry(self) -> dict[str, Any]:
        """Render this server in the external CLI's mcpServers format."""
        if self.transport == "stdio":
            entry: dict[str, Any] = {
                "type": "stdio",
                "command": self.command,
                "args": list(self.args),
            }
            if self.env:
                entry["env"] = dict(self.env)
            return entry
        entry = {"type": self.transport, "url": self.url}
        if self.headers:
            entry["headers"] = dict(self.headers)
        return entry


@dataclass(frozen=True)
class AgentSpec:
    """One configured agent. Immutable for the lifetime of a run.

    Tool lists and connections are ordered tuples: the order is preserved
    when they are joined into the external CLI's comma-separated flags.
    """

    name: str
    working_directory: Path
    additional_directories: tuple[Path, ...] = ()
    model: str | None = None
    system_prompt: str | None = None
    allowed_tools: tuple[str, ...] = ()
    disallowed_tools: tuple[str, ...] = ()
    connections: tuple[str, ...] = ()
    vibe: bool = False
    description: str = ""
    mcps: tuple[MCPServerConfig, ...] = ()

    @property
    def has_tool_policy(self) -> bool:
        """True if the agent restricts tools explicitly or bypasses them."""
        return self.vibe or bool(self.allowed_tools)


@dataclass
class RunGraph:
    """All agents of a swarm plus the designated entry agent.

    Delegation cycles are allowed; they are a runtime concern only.
    """

    name: str
    agents: dict[str, AgentSpec]
    entry_agent: str
    before_commands: list[str] = field(default_factory=list)
    config_path: Path | None = None
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Check structural invariants.

        Raises:
            ConfigurationError: If the entry agent is missing or a connection
                points at an unknown agent or at the agent itself.
        """
        if self.entry_agent not in self.agents:
            raise ConfigurationError(
                f"Entry agent '{self.entry_agent}' is not defined in the swarm"
            )
        for name, agent in self.agents.items():
            if agent.name != name:
                raise ConfigurationError(
                    f"Agent registered as '{name}' is named '{agent.name}'"
                )
            for connection in agent.connections:
                if connection == name:
                    raise ConfigurationError(f"Agent '{name}' cannot connect to itself")
                if connection not in self.agents:
                    raise ConfigurationError(
                        f"Agent '{name}' has connection to unknown agent '{connection}'"
                    )

    @property
    def entry(self) -> AgentSpec:
        return self.agents[self.entry_agent]

    def served_agents(self) -> list[AgentSpec]:
        """Agents that need a capability server, in configuration order.

        That is every agent except the entry agent, plus the entry agent
        itself when another agent lists it as a connection.
        """
        return [
            a for name, a in self.agents.items()
            if name != self.entry_agent or self.callers_of(name)
        ]

    def callers_of(self, name: str) -> list[str]:
        """Names of agents that list ``name`` among their connections."""
        return [a.name for a in self.agents.values() if name in a.connections]
