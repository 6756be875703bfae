"""MCP handoff files.

Every agent gets ``<session>/<agent>.mcp.json``, passed to the external CLI
with ``--mcp-config``. It lists one ``mcpServers`` entry per connection
(pointing at that agent's capability server) plus the agent's own extra
MCP servers. Only the external CLI reads these files.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from agentswarm.config.schema import AgentSpec
from agentswarm.logging import get_logger
from agentswarm.mcp.server import CALLER_HEADER

log = get_logger("mcp.handoff")

LOCALHOST = "127.0.0.1"
MCP_PATH = "/mcp"


@dataclass(frozen=True)
class ServerEndpoint:
    """Where a capability server listens."""

    agent: str
    host: str
    port: int
    path: str = MCP_PATH

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}{self.path}"

    def to_handoff_entry(self, caller: str) -> dict[str, Any]:
        return {
            "type": "http",
            "url": self.url,
            "headers": {CALLER_HEADER: caller},
        }


def build_handoff(agent: AgentSpec, endpoints: dict[str, ServerEndpoint]) -> dict[str, Any]:
    """The handoff document for ``agent``.

    Raises:
        KeyError: If a connection has no endpoint.
    """
    servers: dict[str, Any] = {}
    for connection in agent.connections:
        servers[connection] = endpoints[connection].to_handoff_entry(agent.name)
    for extra in agent.mcps:
        servers[extra.name] = extra.to_handoff_entry()
    return {"mcpServers": servers}


def write_handoff_file(
    agent: AgentSpec, endpoints: dict[str, ServerEndpoint], path: Path
) -> Path:
    """Write the handoff document for ``agent`` to ``path``."""
    document = build_handoff(agent, endpoints)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(document, indent=2) + "\n", encoding="utf-8")
    log.debug("Wrote handoff for %s with %d servers to %s",
              agent.name, len(document["mcpServers"]), path)
    return path
