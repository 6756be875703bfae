"""Swarm configuration for agentswarm.

Example usage:
    from agentswarm.config import load_run_graph

    graph = load_run_graph("swarm.yml")
    print(graph.entry.name, graph.entry.connections)
"""

from agentswarm.config.loader import (
    dict_to_graph,
    load_run_graph,
    load_yaml_file,
)
from agentswarm.config.schema import (
    AgentSpec,
    LoggingConfig,
    MCPServerConfig,
    RunGraph,
)

__all__ = [
    "AgentSpec",
    "LoggingConfig",
    "MCPServerConfig",
    "RunGraph",
    "dict_to_graph",
    "load_run_graph",
    "load_yaml_file",
]
