"""Interactive operator console for the entry agent."""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from prompt_toolkit.history import FileHistory
from rich.console import Console
from rich.markdown import Markdown

from agentswarm.errors import SwarmError
from agentswarm.executor.events import (
    AssistantMessage,
    StreamEvent,
    TerminalResult,
    TextBlock,
    ToolUseBlock,
)

if TYPE_CHECKING:
    from pathlib import Path

    from agentswarm.executor.executor import Executor
    from agentswarm.executor.invocation import TurnOptions

HELP_TEXT = """\
[bold]/info[/bold]   show the current session
[bold]/reset[/bold]  start a fresh conversation on the next prompt
[bold]/quit[/bold]   leave the swarm"""


class EventRenderer:
    """Print stream events to the operator's terminal as they arrive."""

    def __init__(self, console: Console) -> None:
        self.console = console

    def __call__(self, event: StreamEvent) -> None:
        if isinstance(event, AssistantMessage):
            for block in event.content:
                if isinstance(block, TextBlock) and block.text.strip():
                    self.console.print(block.text, style="dim", markup=False, highlight=False)
                elif isinstance(block, ToolUseBlock):
                    args = json.dumps(block.input, ensure_ascii=False)
                    if len(args) > 120:
                        args = args[:117] + "..."
                    self.console.print(f"[cyan]⚙ {block.name}[/cyan] [dim]{args}[/dim]")
        elif isinstance(event, TerminalResult):
            cost = f"${event.cost_usd}" if event.cost_usd is not None else "n/a"
            self.console.print(f"[dim]({cost} - {event.duration_ms or 0}ms)[/dim]")


class InteractiveConsole:
    """Read prompts from the operator and run them on the entry agent."""

    def __init__(
        self,
        executor: Executor,
        options: TurnOptions,
        console: Console | None = None,
        history_file: Path | None = None,
    ) -> None:
        self.executor = executor
        self.options = options
        self.console = console or Console()
        self._running = False

        history = FileHistory(str(history_file)) if history_file else None
        self.session: PromptSession[str] = PromptSession(
            history=history,
            auto_suggest=AutoSuggestFromHistory(),
        )

    async def run(self) -> None:
        """Run until /quit or EOF."""
        self._running = True
        name = self.executor.agent.name
        self.console.print("Type [bold]/help[/bold] for commands, [bold]/quit[/bold] to exit.\n")

        while self._running:
            try:
                line = await asyncio.get_running_loop().run_in_executor(
                    None,
                    lambda: self.session.prompt(f"{name}> "),
                )
            except KeyboardInterrupt:
                continue
            except EOFError:
                break

            line = line.strip()
            if not line:
                continue
            if line.startswith("/"):
                self.handle_command(line)
                continue

            await self.run_turn(line)

        self._running = False

    async def run_turn(self, prompt: str) -> TerminalResult | None:
        """Run one turn; failures are shown to the operator, not raised."""
        try:
            result = await self.executor.execute(prompt, self.options)
        except SwarmError as e:
            self.console.print(f"[bold red]Error:[/bold red] {e}", highlight=False)
            return None
        self.console.print(Markdown(result.result_text))
        return result

    def handle_command(self, line: str) -> None:
        command = line.split()[0].lower()
        if command in ("/quit", "/exit"):
            self._running = False
        elif command == "/reset":
            self.executor.reset_session()
            self.console.print("[dim]Session has been reset[/dim]")
        elif command == "/info":
            session_id = self.executor.session_id or "none"
            self.console.print(
                f"Agent: {self.executor.agent.name}\n"
                f"Session: {session_id}\n"
                f"Directory: {self.executor.working_directory}",
                highlight=False,
            )
        elif command == "/help":
            self.console.print(HELP_TEXT)
        else:
            self.console.print(f"[dim]Unknown command {command}. Type /help for commands.[/dim]")

    def stop(self) -> None:
        self._running = False
