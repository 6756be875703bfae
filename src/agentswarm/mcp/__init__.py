"""MCP surface of agentswarm.

Each non-entry agent is served as an MCP server so its callers can use it
as a tool:

    server = CapabilityServer(agent, executor)
    thread = start_server_thread(server, ServerEndpoint(agent.name, "127.0.0.1", port))

Callers find it through their handoff file (see handoff.py).
"""

from agentswarm.mcp.handoff import ServerEndpoint, build_handoff, write_handoff_file
from agentswarm.mcp.hosting import CapabilityServerThread, find_free_port, start_server_thread
from agentswarm.mcp.server import CALLER_HEADER, CapabilityServer, caller_from_context

__all__ = [
    "CALLER_HEADER",
    "CapabilityServer",
    "CapabilityServerThread",
    "ServerEndpoint",
    "build_handoff",
    "caller_from_context",
    "find_free_port",
    "start_server_thread",
    "write_handoff_file",
]
