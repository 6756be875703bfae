"""Capability server: exposes one agent to other agents as MCP tools.

Tools:
    task           - delegate a prompt to this agent and return its answer
    session_info   - report whether this agent has a conversation to resume
    reset_session  - drop the conversation so the next task starts fresh

The server is a thin façade over the agent's Executor. It applies the
agent's tool policy to every delegated task; the Executor does the rest.
"""

# No ``from __future__ import annotations`` here: FastMCP inspects the tool
# signatures at registration time and needs real annotation objects.

from typing import Annotated, Any

from mcp.server.fastmcp import Context, FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from pydantic import Field

from agentswarm.config.schema import AgentSpec
from agentswarm.errors import SwarmError
from agentswarm.executor.executor import Executor
from agentswarm.executor.invocation import options_for_agent
from agentswarm.logging import get_logger

log = get_logger("mcp.server")

CALLER_HEADER = "x-agentswarm-caller"

TASK_TOOL = "task"
SESSION_INFO_TOOL = "session_info"
RESET_SESSION_TOOL = "reset_session"

TASK_DESCRIPTION = "Execute a task using Claude Code. There is no description parameter."
SESSION_INFO_DESCRIPTION = "Get information about the current Claude session for this agent"
RESET_SESSION_DESCRIPTION = (
    "Reset the Claude session for this agent, starting fresh on the next task"
)


def caller_from_context(ctx: Context | None, default: str) -> str:
    """Read the calling agent's name from the HTTP request, if there is one."""
    if ctx is None:
        return default
    try:
        request = ctx.request_context.request
    except ValueError:
        # Outside of a request (direct calls in tests)
        return default
    headers = getattr(request, "headers", None)
    if headers is None:
        return default
    return headers.get(CALLER_HEADER) or default


class CapabilityServer:
    """One agent's delegate/session-info/reset operations."""

    def __init__(self, agent: AgentSpec, executor: Executor) -> None:
        self.agent = agent
        self.executor = executor

    async def delegate_task(
        self,
        prompt: str,
        new_session: bool = False,
        system_prompt: str | None = None,
        caller: str | None = None,
    ) -> str:
        """Run one turn on this agent and return its result text.

        Raises:
            SwarmError: Whatever the executor raised; the MCP layer reports it
                to the calling agent as a tool error.
        """
        options = options_for_agent(self.agent, new_session=new_session, system_prompt=system_prompt)
        log.info("Task for %s from %s (new_session=%s)", self.agent.name,
                 caller or self.executor.calling_agent, new_session)
        result = await self.executor.execute(prompt, options, caller=caller)
        return result.result_text

    def session_info(self) -> dict[str, Any]:
        return {
            "has_session": self.executor.has_session(),
            "session_id": self.executor.session_id,
            "working_directory": str(self.executor.working_directory),
        }

    def reset_session(self) -> dict[str, Any]:
        self.executor.reset_session()
        return {"success": True, "message": "Session has been reset"}

    def build_app(self) -> FastMCP:
        """Register the three tools on a FastMCP app bound to this server."""
        instructions = self.agent.description or f"Agent {self.agent.name}"
        app = FastMCP(name=self.agent.name, instructions=instructions)
        default_caller = self.executor.calling_agent

        @app.tool(name=TASK_TOOL, description=TASK_DESCRIPTION)
        async def task(
            prompt: Annotated[str, Field(description="The task or question for the agent")],
            ctx: Context,
            new_session: Annotated[
                bool, Field(description="Start a new session (ignore previous context)")
            ] = False,
            system_prompt: Annotated[
                str | None, Field(description="Override the system prompt for this request")
            ] = None,
        ) -> str:
            caller = caller_from_context(ctx, default_caller)
            try:
                return await self.delegate_task(prompt, new_session, system_prompt, caller=caller)
            except SwarmError as e:
                raise ToolError(str(e)) from e

        @app.tool(name=SESSION_INFO_TOOL, description=SESSION_INFO_DESCRIPTION)
        def session_info() -> dict[str, Any]:
            return self.session_info()

        @app.tool(name=RESET_SESSION_TOOL, description=RESET_SESSION_DESCRIPTION)
        def reset_session() -> dict[str, Any]:
            return self.reset_session()

        return app
