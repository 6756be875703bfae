"""Exception hierarchy for agentswarm."""

from __future__ import annotations


class SwarmError(Exception):
    """Base class for all agentswarm errors."""


class ConfigurationError(SwarmError):
    """The swarm configuration is structurally invalid."""


class ExecutionError(SwarmError):
    """The external CLI invocation failed (launch failure, non-zero exit, timeout).

    Callers may retry; the executor never retries on its own.
    """

    def __init__(self, message: str, exit_code: int | None = None, stderr: str = "") -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.stderr = stderr


class ParseError(SwarmError):
    """The event stream ended without a terminal result event."""


class BeforeCommandError(SwarmError):
    """A configured pre-run command failed."""

    def __init__(self, command: str, exit_code: int, output: str = "") -> None:
        super().__init__(f"Before command failed (exit {exit_code}): {command}")
        self.command = command
        self.exit_code = exit_code
        self.output = output


class ServerStartError(SwarmError):
    """A capability server for a non-entry agent could not be started."""
