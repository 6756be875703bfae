"""Tests for the configuration module."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from agentswarm.config import load_run_graph
from agentswarm.config.loader import dict_to_agent, dict_to_graph, load_yaml_file
from agentswarm.config.schema import AgentSpec, MCPServerConfig, RunGraph
from agentswarm.errors import ConfigurationError


def write_swarm(directory: Path, data: dict, name: str = "swarm.yml") -> Path:
    path = directory / name
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


def basic_swarm(**instances_override) -> dict:
    instances = {
        "lead": {
            "description": "Lead developer",
            "directory": ".",
            "model": "opus",
            "connections": ["backend"],
            "allowed_tools": ["Read", "Edit"],
            "prompt": "You coordinate the team",
        },
        "backend": {
            "description": "Backend developer",
            "directory": ".",
            "allowed_tools": ["Bash"],
        },
    }
    instances.update(instances_override)
    return {
        "version": 1,
        "swarm": {"name": "Test Swarm", "main": "lead", "instances": instances},
    }


class TestLoadYaml:
    """Test raw file loading."""

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            load_yaml_file(tmp_path / "missing.yml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yml"
        path.write_text("swarm: [unclosed", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_yaml_file(path)

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="mapping"):
            load_yaml_file(path)


class TestLoadRunGraph:
    """Test conversion of a swarm file to a RunGraph."""

    def test_basic(self, tmp_path: Path) -> None:
        """Test that a valid file produces the expected graph."""
        graph = load_run_graph(write_swarm(tmp_path, basic_swarm()))

        assert graph.name == "Test Swarm"
        assert graph.entry_agent == "lead"
        assert set(graph.agents) == {"lead", "backend"}

        lead = graph.entry
        assert lead.model == "opus"
        assert lead.system_prompt == "You coordinate the team"
        assert lead.allowed_tools == ("Read", "Edit")
        assert lead.connections == ("backend",)
        assert lead.working_directory == tmp_path.resolve()
        assert lead.description == "Lead developer"

    def test_config_path_recorded(self, tmp_path: Path) -> None:
        path = write_swarm(tmp_path, basic_swarm())
        assert load_run_graph(path).config_path == path.resolve()

    def test_relative_directory_resolved_against_config(self, tmp_path: Path) -> None:
        (tmp_path / "api").mkdir()
        path = write_swarm(tmp_path, basic_swarm(backend={"directory": "./api"}))

        graph = load_run_graph(path)
        assert graph.agents["backend"].working_directory == (tmp_path / "api").resolve()

    def test_directory_list(self, tmp_path: Path) -> None:
        """Test that extra directories become additional directories."""
        for name in ("api", "shared", "docs"):
            (tmp_path / name).mkdir()
        path = write_swarm(
            tmp_path, basic_swarm(backend={"directory": ["api", "shared", "docs"]})
        )

        backend = load_run_graph(path).agents["backend"]
        assert backend.working_directory == (tmp_path / "api").resolve()
        assert backend.additional_directories == (
            (tmp_path / "shared").resolve(),
            (tmp_path / "docs").resolve(),
        )

    def test_missing_directory(self, tmp_path: Path) -> None:
        path = write_swarm(tmp_path, basic_swarm(backend={"directory": "nowhere"}))
        with pytest.raises(ConfigurationError, match="does not exist"):
            load_run_graph(path)

    def test_tools_alias(self, tmp_path: Path) -> None:
        path = write_swarm(tmp_path, basic_swarm(backend={"tools": ["Read", "Grep"]}))
        assert load_run_graph(path).agents["backend"].allowed_tools == ("Read", "Grep")

    def test_duplicate_tools_removed(self, tmp_path: Path) -> None:
        path = write_swarm(tmp_path, basic_swarm(backend={"allowed_tools": ["Read", "Read", "Edit"]}))
        assert load_run_graph(path).agents["backend"].allowed_tools == ("Read", "Edit")

    def test_defaults(self, tmp_path: Path) -> None:
        path = write_swarm(tmp_path, basic_swarm(backend={}))
        backend = load_run_graph(path).agents["backend"]

        assert backend.working_directory == tmp_path.resolve()
        assert backend.model is None
        assert backend.allowed_tools == ()
        assert backend.connections == ()
        assert backend.vibe is False
        assert not backend.has_tool_policy

    def test_vibe_override(self, tmp_path: Path) -> None:
        """Test that --vibe applies to every agent."""
        graph = load_run_graph(write_swarm(tmp_path, basic_swarm()), vibe=True)
        assert all(agent.vibe for agent in graph.agents.values())

    def test_before_commands(self, tmp_path: Path) -> None:
        data = basic_swarm()
        data["swarm"]["before"] = ["echo one", "echo two"]
        graph = load_run_graph(write_swarm(tmp_path, data))
        assert graph.before_commands == ["echo one", "echo two"]

    def test_logging_section(self, tmp_path: Path) -> None:
        data = basic_swarm()
        data["logging"] = {"level": "DEBUG", "file": "/tmp/agentswarm.log"}
        graph = load_run_graph(write_swarm(tmp_path, data))

        assert graph.logging.level == "DEBUG"
        assert graph.logging.file == "/tmp/agentswarm.log"
        assert graph.logging.verbose is None

    def test_name_defaults_to_main(self, tmp_path: Path) -> None:
        data = basic_swarm()
        del data["swarm"]["name"]
        assert load_run_graph(write_swarm(tmp_path, data)).name == "lead"

    def test_mcps(self, tmp_path: Path) -> None:
        path = write_swarm(
            tmp_path,
            basic_swarm(backend={
                "mcps": [
                    {"name": "db", "type": "stdio", "command": "db-mcp", "args": ["--ro"]},
                    {"name": "search", "type": "http", "url": "http://localhost:9000/mcp"},
                ],
            }),
        )

        mcps = load_run_graph(path).agents["backend"].mcps
        assert mcps[0] == MCPServerConfig(name="db", command="db-mcp", args=("--ro",))
        assert mcps[1].transport == "http"
        assert mcps[1].url == "http://localhost:9000/mcp"


class TestValidation:
    """Test rejection of structurally invalid swarms."""

    @pytest.mark.parametrize("version", [None, 2, "1"])
    def test_unsupported_version(self, tmp_path: Path, version) -> None:
        data = basic_swarm()
        data["version"] = version
        with pytest.raises(ConfigurationError, match="version"):
            dict_to_graph(data, tmp_path)

    def test_missing_swarm_section(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="swarm"):
            dict_to_graph({"version": 1}, tmp_path)

    def test_no_instances(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="at least one instance"):
            dict_to_graph({"version": 1, "swarm": {"main": "lead", "instances": {}}}, tmp_path)

    def test_missing_main(self, tmp_path: Path) -> None:
        data = basic_swarm()
        del data["swarm"]["main"]
        with pytest.raises(ConfigurationError, match="main"):
            dict_to_graph(data, tmp_path)

    def test_unknown_entry_agent(self, tmp_path: Path) -> None:
        data = basic_swarm()
        data["swarm"]["main"] = "ghost"
        with pytest.raises(ConfigurationError, match="ghost"):
            dict_to_graph(data, tmp_path)

    def test_unknown_connection(self, tmp_path: Path) -> None:
        data = basic_swarm(backend={"connections": ["database"]})
        with pytest.raises(ConfigurationError, match="unknown agent 'database'"):
            dict_to_graph(data, tmp_path)

    def test_self_connection(self, tmp_path: Path) -> None:
        data = basic_swarm(backend={"connections": ["backend"]})
        with pytest.raises(ConfigurationError, match="itself"):
            dict_to_graph(data, tmp_path)

    def test_cycles_allowed(self, tmp_path: Path) -> None:
        """Test that mutual connections are a runtime concern, not a config error."""
        data = basic_swarm(backend={"connections": ["lead"]})
        graph = dict_to_graph(data, tmp_path)
        assert graph.callers_of("lead") == ["backend"]

    def test_tools_must_be_strings(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="list of strings"):
            dict_to_agent("backend", {"allowed_tools": [1, 2]}, tmp_path)

    @pytest.mark.parametrize("value", ["false", "yes", 1])
    def test_vibe_must_be_boolean(self, tmp_path: Path, value) -> None:
        with pytest.raises(ConfigurationError, match="'vibe' must be true or false"):
            dict_to_agent("backend", {"vibe": value}, tmp_path)

    def test_vibe_boolean(self, tmp_path: Path) -> None:
        assert dict_to_agent("backend", {"vibe": True}, tmp_path).vibe is True
        assert dict_to_agent("backend", {"vibe": False}, tmp_path).vibe is False
        assert dict_to_agent("backend", {"vibe": None}, tmp_path).vibe is False

    def test_stdio_mcp_requires_command(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="requires 'command'"):
            dict_to_agent("backend", {"mcps": [{"name": "db"}]}, tmp_path)

    def test_unknown_mcp_transport(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="unknown MCP transport"):
            dict_to_agent("backend", {"mcps": [{"name": "db", "type": "carrier-pigeon"}]}, tmp_path)

    def test_before_must_be_list(self, tmp_path: Path) -> None:
        data = basic_swarm()
        data["swarm"]["before"] = "make setup"
        with pytest.raises(ConfigurationError, match="before"):
            dict_to_graph(data, tmp_path)


class TestRunGraph:
    """Test RunGraph helpers."""

    def test_served_agents_excludes_entry(self, tmp_path: Path) -> None:
        graph = RunGraph(
            name="s",
            agents={
                "lead": AgentSpec("lead", tmp_path, connections=("a", "b")),
                "a": AgentSpec("a", tmp_path),
                "b": AgentSpec("b", tmp_path, connections=("a",)),
            },
            entry_agent="lead",
        )

        assert [a.name for a in graph.served_agents()] == ["a", "b"]
        assert graph.callers_of("a") == ["lead", "b"]
        assert graph.callers_of("lead") == []

    def test_served_agents_includes_called_entry(self, tmp_path: Path) -> None:
        """Test that an entry agent other agents connect to gets served too."""
        graph = RunGraph(
            name="s",
            agents={
                "lead": AgentSpec("lead", tmp_path, connections=("backend",)),
                "backend": AgentSpec("backend", tmp_path, connections=("lead",)),
            },
            entry_agent="lead",
        )

        assert [a.name for a in graph.served_agents()] == ["lead", "backend"]
        assert graph.callers_of("lead") == ["backend"]

    def test_mismatched_name(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError):
            RunGraph(name="s", agents={"lead": AgentSpec("other", tmp_path)}, entry_agent="lead")
