"""Executor: drives one agent's turns against the external CLI."""

from __future__ import annotations

import asyncio
import shlex
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from agentswarm.config.schema import AgentSpec
from agentswarm.errors import ExecutionError, ParseError
from agentswarm.executor.events import (
    AssistantMessage,
    EventStreamParser,
    StreamEvent,
    SystemInit,
    TerminalResult,
    TextBlock,
    ToolUseBlock,
)
from agentswarm.executor.invocation import DEFAULT_BINARY, TurnOptions, build_invocation_args
from agentswarm.executor.runner import ProcessRunner, SubprocessRunner
from agentswarm.logging import VERBOSE, get_logger
from agentswarm.session.context import RunContext

log = get_logger("executor")

OPERATOR = "user"


@dataclass
class Session:
    """Conversation state of one agent. Lives only as long as the process."""

    session_id: str | None = None
    last_result: TerminalResult | None = None

    def clear(self) -> None:
        self.session_id = None
        self.last_result = None


class Executor:
    """Runs turns for one agent and records them in the run's session log.

    Turns are strictly sequential: a second ``execute()`` waits until the
    first one has finished. The conversation is resumed across turns via the
    session id the CLI reports in its result event.

    Example:
        executor = Executor(agent, context, calling_agent="lead")
        result = await executor.execute("Fix the failing test")
        print(result.result_text)
    """

    def __init__(
        self,
        agent: AgentSpec,
        context: RunContext,
        calling_agent: str = OPERATOR,
        handoff_path: str | Path | None = None,
        runner: ProcessRunner | None = None,
        binary: str = DEFAULT_BINARY,
        on_event: Callable[[StreamEvent], None] | None = None,
        timeout: float | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            agent: The agent this executor drives.
            context: Run context providing the session log and environment.
            calling_agent: Default counterpart recorded in the session log.
            handoff_path: MCP config file passed to the CLI, if any.
            runner: Process runner; defaults to a local subprocess runner.
            binary: External CLI executable.
            on_event: Callback for every parsed stream event (live display).
            timeout: Per-turn timeout in seconds. None means no timeout.
        """
        self.agent = agent
        self.context = context
        self.calling_agent = calling_agent
        self.handoff_path = handoff_path
        self.session = Session()
        self._runner = runner or SubprocessRunner()
        self._binary = binary
        self._on_event = on_event
        self._timeout = timeout
        self._turn_lock: asyncio.Lock | None = None
        log.info("Started executor for agent: %s", agent.name)
        context.session_log.executor_started(agent.name, calling_agent)

    @property
    def session_id(self) -> str | None:
        return self.session.session_id

    @property
    def last_result(self) -> TerminalResult | None:
        return self.session.last_result

    @property
    def working_directory(self) -> Path:
        return self.agent.working_directory

    def has_session(self) -> bool:
        return self.session.session_id is not None

    def reset_session(self) -> None:
        """Forget the conversation; the next turn starts fresh. Not logged."""
        self.session.clear()
        log.debug("Session reset for %s", self.agent.name)

    def build_args(self, prompt: str, options: TurnOptions | None = None) -> list[str]:
        """The argv the next turn would run with."""
        return build_invocation_args(
            self.agent,
            prompt,
            options,
            session_id=self.session.session_id,
            handoff_path=self.handoff_path,
            binary=self._binary,
        )

    async def execute(
        self,
        prompt: str,
        options: TurnOptions | None = None,
        caller: str | None = None,
    ) -> TerminalResult:
        """Run one turn.

        Args:
            prompt: Prompt text.
            options: Per-turn overrides (session, system prompt, tools).
            caller: Counterpart to record for this turn; defaults to
                ``calling_agent``.

        Returns:
            The turn's terminal result.

        Raises:
            ExecutionError: The process failed to start, exited non-zero or
                timed out.
            ParseError: The stream ended without a result event.
        """
        if self._turn_lock is None:
            self._turn_lock = asyncio.Lock()

        async with self._turn_lock:
            return await self._execute_turn(prompt, options, caller or self.calling_agent)

    async def _execute_turn(
        self, prompt: str, options: TurnOptions | None, caller: str
    ) -> TerminalResult:
        session_log = self.context.session_log
        name = self.agent.name
        args = self.build_args(prompt, options)

        log.log(VERBOSE, "Running for %s: %s", name, shlex.join(args))
        session_log.prompt_sent(name, caller, prompt)

        parser = EventStreamParser()

        def on_line(line: str) -> None:
            event = parser.feed(line)
            if event is not None:
                self._handle_event(event, caller)

        env = self.context.as_env()
        try:
            run = self._runner.run(args, str(self.agent.working_directory), on_line, env)
            if self._timeout is not None:
                outcome = await asyncio.wait_for(run, timeout=self._timeout)
            else:
                outcome = await run
        except asyncio.TimeoutError:
            message = f"Execution error: {name} timed out after {self._timeout}s"
            session_log.error(name, caller, message)
            raise ExecutionError(message) from None
        except ExecutionError as e:
            session_log.error(name, caller, f"Execution error: {e}")
            raise
        except asyncio.CancelledError:
            session_log.error(name, caller, "Execution error: turn cancelled")
            raise
        except Exception as e:
            session_log.error(name, caller, f"Unexpected error: {e}")
            raise

        if not outcome.success:
            detail = outcome.stderr.strip() or "no diagnostic output"
            message = f"Execution error: {name} exited with code {outcome.exit_code}: {detail}"
            session_log.error(name, caller, message)
            raise ExecutionError(message, exit_code=outcome.exit_code, stderr=outcome.stderr)

        try:
            result = parser.finish()
        except ParseError as e:
            session_log.error(name, caller, f"Parse error: {e}")
            raise

        # Only a turn that exited cleanly with a result moves the session forward
        self.session.session_id = result.session_id
        self.session.last_result = result
        session_log.turn_completed(
            name, caller, result.result_text, result.cost_usd, result.duration_ms
        )
        return result

    def _handle_event(self, event: StreamEvent, caller: str) -> None:
        session_log = self.context.session_log
        name = self.agent.name

        if isinstance(event, SystemInit):
            log.log(VERBOSE, "%s session %s initialised with %d tools",
                    name, event.session_id, len(event.tools))
        elif isinstance(event, AssistantMessage):
            for block in event.content:
                if isinstance(block, TextBlock):
                    if block.text.strip():
                        session_log.thinking(name, caller, block.text)
                elif isinstance(block, ToolUseBlock):
                    session_log.tool_invoked(name, caller, block.name, block.id, block.input)
        elif isinstance(event, TerminalResult):
            log.log(VERBOSE, "%s reported a result for session %s", name, event.session_id)

        if self._on_event is not None:
            self._on_event(event)
