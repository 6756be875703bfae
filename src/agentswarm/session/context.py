"""Per-run shared state.

A RunContext is built once per run by the orchestrator (or rebuilt from the
environment in a standalone ``agentswarm serve`` process) and handed to
every executor and capability server of the run. It owns the session
directory and the one SessionLog all agents append to.
"""

from __future__ import annotations

import os
import threading
from datetime import datetime
from pathlib import Path

from agentswarm.errors import ConfigurationError
from agentswarm.logging import get_logger
from agentswarm.session.log import SessionLog

log = get_logger("session")

HOME_ENV = "AGENTSWARM_HOME"
SESSION_PATH_ENV = "AGENTSWARM_SESSION_PATH"
START_DIR_ENV = "AGENTSWARM_START_DIR"

DEFAULT_HOME = ".agentswarm"
SESSION_LOG_FILENAME = "session.log"


def swarm_home() -> Path:
    """Root directory for agentswarm state ($AGENTSWARM_HOME or ~/.agentswarm)."""
    override = os.environ.get(HOME_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / DEFAULT_HOME


def sanitize_identity(path: str | Path) -> str:
    """Turn a filesystem path into a single directory name.

    Path separators (and drive colons) become ``+``.
    e.g. ``/home/me/project`` -> ``home+me+project``
    """
    text = str(path).replace("\\", "/").replace(":", "")
    return "+".join(part for part in text.split("/") if part)


def derive_session_path(
    config_path: str | Path | None,
    home: Path | None = None,
    now: datetime | None = None,
) -> Path:
    """Derive ``<home>/sessions/<sanitized config dir>/<YYYYMMDD_HHMMSS>``."""
    home = home or swarm_home()
    now = now or datetime.now()
    identity_dir = Path(config_path).resolve().parent if config_path else Path.cwd()
    return home / "sessions" / sanitize_identity(identity_dir) / now.strftime("%Y%m%d_%H%M%S")


class RunContext:
    """Session directory, start directory and shared session log of one run."""

    def __init__(self, session_path: str | Path, start_dir: str | Path, restored: bool = False) -> None:
        self.session_path = Path(session_path)
        self.start_dir = Path(start_dir)
        self.restored = restored
        self._log: SessionLog | None = None
        self._lock = threading.Lock()

    @classmethod
    def establish(
        cls,
        config_path: str | Path | None = None,
        restore_path: str | Path | None = None,
        start_dir: str | Path | None = None,
    ) -> RunContext:
        """Create the session directory for a new or resumed run.

        Args:
            config_path: Swarm file, used to derive the session directory name.
            restore_path: Existing session directory to resume instead.
            start_dir: Directory the run was launched from (defaults to cwd).

        Raises:
            ConfigurationError: If ``restore_path`` is not an existing directory.
        """
        if restore_path is not None:
            session_path = Path(restore_path).expanduser().resolve()
            if not session_path.is_dir():
                raise ConfigurationError(f"Session directory to restore not found: {restore_path}")
            restored = True
        else:
            session_path = derive_session_path(config_path)
            restored = False
        session_path.mkdir(parents=True, exist_ok=True)
        log.info("Session path: %s (restored=%s)", session_path, restored)
        return cls(session_path, Path(start_dir or Path.cwd()).resolve(), restored=restored)

    @classmethod
    def from_env(cls) -> RunContext:
        """Rebuild the context a parent orchestrator exported to this process."""
        session_path = os.environ.get(SESSION_PATH_ENV)
        if session_path:
            path = Path(session_path)
        else:
            path = derive_session_path(None)
        path.mkdir(parents=True, exist_ok=True)
        start_dir = os.environ.get(START_DIR_ENV) or os.getcwd()
        return cls(path, start_dir, restored=bool(session_path))

    @property
    def session_log(self) -> SessionLog:
        """The run's shared session log, opened on first use."""
        with self._lock:
            if self._log is None:
                self._log = SessionLog(self.session_path / SESSION_LOG_FILENAME)
            return self._log

    def handoff_path(self, agent_name: str) -> Path:
        """Location of an agent's MCP handoff file."""
        return self.session_path / f"{agent_name}.mcp.json"

    def as_env(self) -> dict[str, str]:
        """Environment variables exported to child processes."""
        return {
            SESSION_PATH_ENV: str(self.session_path),
            START_DIR_ENV: str(self.start_dir),
        }

    def close(self) -> None:
        with self._lock:
            if self._log is not None:
                self._log.close()
                self._log = None

    def __repr__(self) -> str:
        return f"RunContext(session_path={str(self.session_path)!r}, restored={self.restored})"
