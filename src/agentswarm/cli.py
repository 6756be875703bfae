"""Command-line interface for agentswarm."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path

from agentswarm import __version__
from agentswarm.config.schema import LoggingConfig
from agentswarm.errors import SwarmError

DEFAULT_CONFIG = "agentswarm.yml"


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="agentswarm",
        description="Run a swarm of coding agents that delegate work to each other",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=None,
        help="Increase diagnostic verbosity (can be repeated)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command")

    start_parser = subparsers.add_parser(
        "start",
        help="Start the swarm and launch the main agent",
    )
    start_parser.add_argument(
        "config",
        nargs="?",
        type=Path,
        default=Path(DEFAULT_CONFIG),
        help=f"Swarm configuration file (default: ./{DEFAULT_CONFIG})",
    )
    start_parser.add_argument(
        "-p", "--prompt",
        help="Run a single prompt non-interactively and print the result",
    )
    start_parser.add_argument(
        "--vibe",
        action="store_true",
        help="Bypass all tool permission checks for every agent",
    )
    start_parser.add_argument(
        "--restore",
        type=Path,
        metavar="SESSION_PATH",
        help="Resume a previous run from its session directory",
    )
    start_parser.add_argument(
        "--debug",
        action="store_true",
        help="Print the main agent's command line",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Serve one agent as an MCP server over stdio",
    )
    serve_parser.add_argument(
        "--config",
        type=Path,
        default=Path(DEFAULT_CONFIG),
        help=f"Swarm configuration file (default: ./{DEFAULT_CONFIG})",
    )
    serve_parser.add_argument(
        "--agent",
        required=True,
        help="Name of the agent to serve",
    )
    serve_parser.add_argument(
        "--caller",
        help="Name of the calling agent, recorded in the session log",
    )
    serve_parser.add_argument(
        "--vibe",
        action="store_true",
        help="Bypass all tool permission checks",
    )

    return parser


def _setup_logging(graph_logging: LoggingConfig | None, verbose: int | None) -> None:
    from agentswarm.logging import setup_logging

    config = graph_logging or LoggingConfig()
    if verbose is not None:
        config = LoggingConfig(level=config.level, verbose=min(verbose + 1, 4), file=config.file)
    setup_logging(config)


def run_start(parsed: argparse.Namespace) -> int:
    from agentswarm.config.loader import load_run_graph
    from agentswarm.orchestrator import Orchestrator

    graph = load_run_graph(parsed.config, vibe=parsed.vibe)
    _setup_logging(graph.logging, parsed.verbose)

    orchestrator = Orchestrator(
        graph,
        prompt=parsed.prompt,
        restore_session_path=parsed.restore,
        debug=parsed.debug,
    )
    result = orchestrator.start()
    if result is not None and result.is_error:
        return 1
    return 0


def run_serve(parsed: argparse.Namespace) -> int:
    from agentswarm.config.loader import load_run_graph
    from agentswarm.errors import ConfigurationError
    from agentswarm.executor.executor import Executor
    from agentswarm.mcp.server import CapabilityServer
    from agentswarm.session.context import RunContext

    graph = load_run_graph(parsed.config, vibe=parsed.vibe)
    _setup_logging(graph.logging, parsed.verbose)

    agent = graph.agents.get(parsed.agent)
    if agent is None:
        raise ConfigurationError(f"Unknown agent '{parsed.agent}'")

    context = RunContext.from_env()
    handoff = context.handoff_path(agent.name)
    executor = Executor(
        agent,
        context,
        calling_agent=parsed.caller or graph.entry_agent,
        handoff_path=handoff if handoff.exists() else None,
    )
    try:
        CapabilityServer(agent, executor).build_app().run(transport="stdio")
    finally:
        context.close()
    return 0


def run_cli(args: Sequence[str]) -> int:
    """Run the CLI with the given arguments."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if parsed.command is None:
        parser.print_help()
        return 1

    try:
        if parsed.command == "start":
            return run_start(parsed)
        if parsed.command == "serve":
            return run_serve(parsed)
    except SwarmError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130

    parser.print_help()
    return 1


def main() -> None:
    sys.exit(run_cli(sys.argv[1:]))
