"""Orchestrator: turns a RunGraph into a running swarm.

Start-up order:
    1. before commands (fresh runs only)
    2. run context (session directory, session log)
    3. handoff files for every agent, capability servers for every
       non-entry agent and for the entry agent when something calls it
    4. the entry agent, interactively or for a single prompt

Any failure in steps 1-3 aborts the run; nothing is left running.
"""

from __future__ import annotations

import asyncio
import shlex
import subprocess
from collections.abc import Callable
from pathlib import Path

from rich.console import Console

from agentswarm.config.schema import AgentSpec, RunGraph
from agentswarm.errors import BeforeCommandError, ServerStartError
from agentswarm.executor.events import TerminalResult
from agentswarm.executor.executor import OPERATOR, Executor
from agentswarm.executor.invocation import DEFAULT_BINARY, options_for_agent
from agentswarm.executor.runner import ProcessRunner
from agentswarm.interactive import EventRenderer, InteractiveConsole
from agentswarm.logging import get_logger
from agentswarm.mcp.handoff import LOCALHOST, ServerEndpoint, write_handoff_file
from agentswarm.mcp.hosting import ServerHandle, find_free_port, start_server_thread
from agentswarm.mcp.server import CapabilityServer
from agentswarm.session.context import RunContext

log = get_logger("orchestrator")

ServerStarter = Callable[[CapabilityServer, ServerEndpoint], ServerHandle]


def run_before_commands(commands: list[str], cwd: Path, console: Console | None = None) -> None:
    """Run one-time setup commands in order.

    Raises:
        BeforeCommandError: On the first command that exits non-zero.
    """
    for command in commands:
        if console:
            console.print(f"  $ {command}", highlight=False)
        log.info("Running before command: %s", command)
        completed = subprocess.run(
            command,
            shell=True,
            cwd=cwd,
            capture_output=True,
            text=True,
        )
        output = (completed.stdout or "") + (completed.stderr or "")
        if completed.returncode != 0:
            log.error("Before command failed (%s): %s", completed.returncode, output.strip())
            raise BeforeCommandError(command, completed.returncode, output)
        if console and output.strip():
            console.print(output.rstrip(), style="dim", markup=False, highlight=False)


class Orchestrator:
    """Starts every agent of a swarm and drives the entry agent.

    Example:
        graph = load_run_graph("swarm.yml")
        Orchestrator(graph, prompt="Add a health check endpoint").start()
    """

    def __init__(
        self,
        graph: RunGraph,
        prompt: str | None = None,
        restore_session_path: str | Path | None = None,
        debug: bool = False,
        console: Console | None = None,
        runner: ProcessRunner | None = None,
        binary: str = DEFAULT_BINARY,
        server_starter: ServerStarter | None = None,
        start_dir: str | Path | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            graph: Validated swarm graph.
            prompt: One-shot prompt; runs a single non-interactive turn.
            restore_session_path: Existing session directory to resume.
            debug: Print the entry agent's command line before running it.
            console: Console for operator output.
            runner: Process runner shared by every executor.
            binary: External CLI executable.
            server_starter: Starts a capability server and waits for it.
            start_dir: Directory the run was launched from.
        """
        self.graph = graph
        self.prompt = prompt
        self.restore_session_path = restore_session_path
        self.debug = debug
        self.console = console or Console()
        self._runner = runner
        self._binary = binary
        self._server_starter = server_starter or start_server_thread
        self._start_dir = Path(start_dir or Path.cwd()).resolve()

        self.context: RunContext | None = None
        self.endpoints: dict[str, ServerEndpoint] = {}
        self.servers: list[ServerHandle] = []
        self.entry_executor: Executor | None = None

    @property
    def quiet(self) -> bool:
        """One-shot runs print only the result."""
        return self.prompt is not None

    def _say(self, message: str) -> None:
        if not self.quiet:
            self.console.print(message, highlight=False)

    def start(self) -> TerminalResult | None:
        """Run the swarm to completion.

        Returns:
            The one-shot turn's result, or None after an interactive session.

        Raises:
            BeforeCommandError: A before command failed.
            ServerStartError: A capability server could not start.
            ExecutionError, ParseError: The entry agent's turn failed.
        """
        restoring = self.restore_session_path is not None

        self._say(f"🐝 Starting swarm: {self.graph.name}")
        if restoring:
            self._say(f"🔄 Resuming session: {self.restore_session_path}")
        elif self.graph.before_commands:
            self._say("⚙️  Executing before commands...")
            run_before_commands(
                self.graph.before_commands,
                self._start_dir,
                None if self.quiet else self.console,
            )

        self.context = RunContext.establish(
            config_path=self.graph.config_path,
            restore_path=self.restore_session_path,
            start_dir=self._start_dir,
        )
        self._say(f"📝 Session files will be saved to: {self.context.session_path}")

        try:
            self._start_servers(self.context)
            self._say("✓ Generated MCP configurations in session directory")
            return self._run_entry(self.context)
        finally:
            self.shutdown()

    def _allocate_endpoints(self) -> None:
        for agent in self.graph.served_agents():
            self.endpoints[agent.name] = ServerEndpoint(agent.name, LOCALHOST, find_free_port())

    def _start_servers(self, context: RunContext) -> None:
        self._allocate_endpoints()

        for agent in self.graph.agents.values():
            write_handoff_file(agent, self.endpoints, context.handoff_path(agent.name))

        for agent in self.graph.served_agents():
            callers = self.graph.callers_of(agent.name)
            executor = Executor(
                agent,
                context,
                calling_agent=callers[0] if callers else self.graph.entry_agent,
                handoff_path=context.handoff_path(agent.name),
                runner=self._runner,
                binary=self._binary,
            )
            server = CapabilityServer(agent, executor)
            endpoint = self.endpoints[agent.name]
            try:
                handle = self._server_starter(server, endpoint)
            except ServerStartError:
                raise
            except Exception as e:
                raise ServerStartError(
                    f"Capability server for '{agent.name}' failed to start: {e}"
                ) from e
            self.servers.append(handle)

    def _describe_entry(self, agent: AgentSpec) -> None:
        self._say(f"🚀 Launching main instance: {agent.name}")
        if agent.model:
            self._say(f"   Model: {agent.model}")
        self._say(f"   Directory: {agent.working_directory}")
        if agent.allowed_tools:
            self._say(f"   Allowed tools: {', '.join(agent.allowed_tools)}")
        if agent.connections:
            self._say(f"   Connections: {', '.join(agent.connections)}")
        if agent.vibe:
            self._say("   [bold yellow]Vibe mode: all tool permissions bypassed[/bold yellow]")

    def _run_entry(self, context: RunContext) -> TerminalResult | None:
        agent = self.graph.entry
        renderer = None if self.quiet else EventRenderer(self.console)
        executor = Executor(
            agent,
            context,
            calling_agent=OPERATOR,
            handoff_path=context.handoff_path(agent.name),
            runner=self._runner,
            binary=self._binary,
            on_event=renderer,
        )
        self.entry_executor = executor
        options = options_for_agent(agent)

        self._describe_entry(agent)

        if self.prompt is not None:
            result = asyncio.run(executor.execute(self.prompt, options))
            print(result.result_text)
            return result

        if self.debug:
            self._say(f"🏃 Running: {shlex.join(executor.build_args('<prompt>', options))}")

        interactive = InteractiveConsole(
            executor,
            options,
            console=self.console,
            history_file=context.session_path / "history",
        )
        asyncio.run(interactive.run())
        return None

    def shutdown(self) -> None:
        """Stop every capability server and close the session log."""
        for handle in reversed(self.servers):
            try:
                handle.stop()
            except Exception as e:
                log.warning("Error stopping capability server %s: %s", handle.endpoint.agent, e)
        self.servers.clear()
        if self.context is not None:
            self.context.close()
