"""Subprocess runner for the external CLI.

Spawns one process per turn and drains stdout and stderr concurrently so
neither pipe can fill up and stall the child. stdout lines are handed to a
callback as they arrive; stderr is collected for diagnostics.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Protocol

from agentswarm.errors import ExecutionError
from agentswarm.logging import get_logger

log = get_logger("executor.runner")

# stream-json lines carry whole tool results; the asyncio default (64 KiB) is too small
STREAM_LIMIT = 16 * 1024 * 1024

STDERR_LIMIT = 50000


@dataclass
class ProcessOutcome:
    """How a finished process ended.

    Attributes:
        exit_code: Process exit code (0 = success).
        stderr: Captured stderr (may be truncated).
        duration_ms: Wall time in milliseconds.
    """

    exit_code: int
    stderr: str
    duration_ms: float

    @property
    def success(self) -> bool:
        return self.exit_code == 0


class ProcessRunner(Protocol):
    """Protocol for running one external CLI invocation.

    Implementations:
    - SubprocessRunner: local asyncio subprocess
    - test fakes that replay canned event streams
    """

    async def run(
        self,
        args: Sequence[str],
        cwd: str | None,
        on_line: Callable[[str], None],
        env: dict[str, str] | None = None,
    ) -> ProcessOutcome:
        """Run ``args`` to completion, calling ``on_line`` for each stdout line.

        Raises:
            ExecutionError: If the process cannot be started.
        """
        ...


class SubprocessRunner:
    """Run the external CLI with asyncio subprocesses."""

    def __init__(self, stderr_limit: int = STDERR_LIMIT) -> None:
        self._stderr_limit = stderr_limit

    async def run(
        self,
        args: Sequence[str],
        cwd: str | None,
        on_line: Callable[[str], None],
        env: dict[str, str] | None = None,
    ) -> ProcessOutcome:
        start_time = time.perf_counter()

        process_env = os.environ.copy()
        if env:
            process_env.update(env)

        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=cwd,
                env=process_env,
                limit=STREAM_LIMIT,
            )
        except FileNotFoundError as e:
            raise ExecutionError(f"Command not found: {args[0]}", exit_code=127) from e
        except PermissionError as e:
            raise ExecutionError(f"Permission denied: {args[0]}", exit_code=126) from e
        except OSError as e:
            raise ExecutionError(f"Failed to start {args[0]}: {e}") from e

        log.debug("Started pid=%s: %s", process.pid, args[0])
        stderr_chunks: list[str] = []

        async def read_stdout() -> None:
            assert process.stdout is not None
            async for raw in process.stdout:
                on_line(raw.decode("utf-8", errors="replace"))

        async def read_stderr() -> None:
            assert process.stderr is not None
            async for raw in process.stderr:
                stderr_chunks.append(raw.decode("utf-8", errors="replace"))

        try:
            # Both readers must drain before the exit status means anything
            await asyncio.gather(read_stdout(), read_stderr())
            exit_code = await process.wait()
        except BaseException:
            # Cancellation or a failing callback: don't leave the child behind
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            with contextlib.suppress(Exception):
                await asyncio.shield(process.wait())
            raise

        stderr = "".join(stderr_chunks)
        if len(stderr) > self._stderr_limit:
            stderr = stderr[: self._stderr_limit] + "\n... (output truncated)"

        duration_ms = (time.perf_counter() - start_time) * 1000
        log.debug("pid=%s exited with %s after %.0fms", process.pid, exit_code, duration_ms)
        return ProcessOutcome(exit_code=exit_code, stderr=stderr, duration_ms=duration_ms)
