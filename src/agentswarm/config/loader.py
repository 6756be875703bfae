"""Swarm configuration file loading.

Handles:
- YAML file parsing
- Relative directory resolution against the config file location
- Conversion from dict to a validated RunGraph
"""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Any

import yaml

from agentswarm.config.schema import AgentSpec, LoggingConfig, MCPServerConfig, RunGraph
from agentswarm.errors import ConfigurationError

_log = logging.getLogger("agentswarm.config")

SUPPORTED_VERSION = 1


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a swarm YAML file.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed YAML mapping.

    Raises:
        ConfigurationError: If the file is missing, unreadable or not a mapping.
    """
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Error reading {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration in {path} must be a mapping")
    return data


def _string_list(value: Any, field_name: str, agent: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigurationError(f"Agent '{agent}': '{field_name}' must be a list of strings")
    # De-duplicate, keeping first occurrence
    return tuple(dict.fromkeys(value))


def _flag(value: Any, field_name: str, agent: str) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ConfigurationError(f"Agent '{agent}': '{field_name}' must be true or false")
    return value


def _resolve_directory(raw: str, base_dir: Path, agent: str) -> Path:
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    path = path.resolve()
    if not path.is_dir():
        raise ConfigurationError(f"Directory '{raw}' for agent '{agent}' does not exist")
    return path


def _parse_mcps(data: Any, agent: str) -> tuple[MCPServerConfig, ...]:
    if data is None:
        return ()
    if not isinstance(data, list):
        raise ConfigurationError(f"Agent '{agent}': 'mcps' must be a list")

    servers = []
    for s in data:
        if not isinstance(s, dict) or not s.get("name"):
            raise ConfigurationError(f"Agent '{agent}': every MCP server needs a 'name'")
        transport = s.get("type", "stdio")
        if transport == "stdio" and not s.get("command"):
            raise ConfigurationError(
                f"Agent '{agent}': stdio MCP server '{s['name']}' requires 'command'"
            )
        if transport in ("http", "sse") and not s.get("url"):
            raise ConfigurationError(
                f"Agent '{agent}': {transport} MCP server '{s['name']}' requires 'url'"
            )
        if transport not in ("stdio", "http", "sse"):
            raise ConfigurationError(
                f"Agent '{agent}': unknown MCP transport '{transport}' for '{s['name']}'"
            )
        servers.append(
            MCPServerConfig(
                name=s["name"],
                transport=transport,
                command=s.get("command"),
                args=tuple(s.get("args", [])),
                env=dict(s.get("env", {})),
                url=s.get("url"),
                headers=dict(s.get("headers", {})),
            )
        )
    return tuple(servers)


def dict_to_agent(name: str, data: dict[str, Any], base_dir: Path) -> AgentSpec:
    """Convert one ``instances`` entry to an AgentSpec."""
    if not isinstance(data, dict):
        raise ConfigurationError(f"Agent '{name}' must be a mapping")

    directories = data.get("directory", ".")
    if isinstance(directories, str):
        directories = [directories]
    if not isinstance(directories, list) or not directories:
        raise ConfigurationError(f"Agent '{name}': 'directory' must be a path or list of paths")
    resolved = [_resolve_directory(d, base_dir, name) for d in directories]

    # "tools" is accepted as an alias for older swarm files
    allowed = data.get("allowed_tools", data.get("tools"))

    return AgentSpec(
        name=name,
        working_directory=resolved[0],
        additional_directories=tuple(resolved[1:]),
        model=data.get("model"),
        system_prompt=data.get("prompt"),
        allowed_tools=_string_list(allowed, "allowed_tools", name),
        disallowed_tools=_string_list(data.get("disallowed_tools"), "disallowed_tools", name),
        connections=_string_list(data.get("connections"), "connections", name),
        vibe=_flag(data.get("vibe"), "vibe", name),
        description=data.get("description", ""),
        mcps=_parse_mcps(data.get("mcps"), name),
    )


def dict_to_graph(data: dict[str, Any], base_dir: Path, config_path: Path | None = None) -> RunGraph:
    """Convert a parsed swarm file to a validated RunGraph.

    Args:
        data: Parsed YAML mapping.
        base_dir: Directory relative agent directories are resolved against.
        config_path: Source file, recorded on the graph for session naming.

    Raises:
        ConfigurationError: On any structural problem.
    """
    version = data.get("version")
    if version != SUPPORTED_VERSION:
        raise ConfigurationError(
            f"Unsupported configuration version: {version!r} (expected {SUPPORTED_VERSION})"
        )

    swarm = data.get("swarm")
    if not isinstance(swarm, dict):
        raise ConfigurationError("Missing 'swarm' section")

    instances = swarm.get("instances")
    if not isinstance(instances, dict) or not instances:
        raise ConfigurationError("Swarm must define at least one instance")

    main = swarm.get("main")
    if not main:
        raise ConfigurationError("Swarm must name a 'main' instance")

    before = swarm.get("before") or []
    if not isinstance(before, list) or not all(isinstance(c, str) for c in before):
        raise ConfigurationError("'before' must be a list of shell commands")

    agents = {name: dict_to_agent(name, spec, base_dir) for name, spec in instances.items()}

    log_data = data.get("logging") or {}
    logging_config = LoggingConfig(
        level=log_data.get("level"),
        verbose=log_data.get("verbose"),
        file=log_data.get("file"),
    )

    return RunGraph(
        name=swarm.get("name", main),
        agents=agents,
        entry_agent=main,
        before_commands=list(before),
        config_path=config_path,
        logging=logging_config,
    )


def load_run_graph(path: str | Path, vibe: bool = False) -> RunGraph:
    """Load a swarm file into a RunGraph.

    Args:
        path: Path to the swarm YAML file.
        vibe: Force vibe mode on every agent.

    Returns:
        Validated RunGraph.
    """
    config_path = Path(path).expanduser().resolve()
    data = load_yaml_file(config_path)
    graph = dict_to_graph(data, config_path.parent, config_path)
    _log.debug("Loaded swarm '%s' with %d agents from %s", graph.name, len(graph.agents), path)

    if vibe:
        graph = RunGraph(
            name=graph.name,
            agents={n: replace(a, vibe=True) for n, a in graph.agents.items()},
            entry_agent=graph.entry_agent,
            before_commands=graph.before_commands,
            config_path=graph.config_path,
            logging=graph.logging,
        )
    return graph
