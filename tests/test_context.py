"""Tests for the per-run context and session directory naming."""

from __future__ import annotations

from datetime import datetime

import pytest

from agentswarm.errors import ConfigurationError
from agentswarm.session.context import (
    SESSION_PATH_ENV,
    START_DIR_ENV,
    RunContext,
    derive_session_path,
    sanitize_identity,
    swarm_home as resolve_swarm_home,
)


class TestSessionPaths:
    def test_swarm_home_override(self, swarm_home) -> None:
        assert resolve_swarm_home() == swarm_home

    def test_sanitize_identity(self) -> None:
        assert sanitize_identity("/home/me/project") == "home+me+project"

    def test_sanitize_windows_path(self) -> None:
        assert sanitize_identity("C:\\work\\project") == "C+work+project"

    def test_derive_session_path(self, tmp_path) -> None:
        """Test <home>/sessions/<config dir>/<timestamp> naming."""
        config = tmp_path / "proj" / "swarm.yml"
        now = datetime(2026, 3, 4, 5, 6, 7)

        path = derive_session_path(config, home=tmp_path / "home", now=now)

        assert path.parent.parent == tmp_path / "home" / "sessions"
        assert path.parent.name == sanitize_identity(config.resolve().parent)
        assert path.name == "20260304_050607"

    def test_derive_uses_swarm_home(self, swarm_home, tmp_path) -> None:
        path = derive_session_path(tmp_path / "swarm.yml")
        assert swarm_home in path.parents


class TestRunContext:
    def test_establish_fresh(self, tmp_path) -> None:
        context = RunContext.establish(config_path=tmp_path / "swarm.yml", start_dir=tmp_path)

        assert context.session_path.is_dir()
        assert context.restored is False
        assert context.start_dir == tmp_path.resolve()

    def test_establish_restored(self, tmp_path) -> None:
        """Test that a restore reuses the given directory as-is."""
        existing = tmp_path / "old_session"
        existing.mkdir()
        (existing / "session.log").write_text("[earlier] INFO -- old entry\n")

        context = RunContext.establish(restore_path=existing, start_dir=tmp_path)

        assert context.session_path == existing.resolve()
        assert context.restored is True
        context.session_log.prompt_sent("a", "user", "resumed")
        context.close()
        assert (existing / "session.log").read_text().splitlines()[0] == "[earlier] INFO -- old entry"

    def test_establish_restore_missing(self, tmp_path) -> None:
        missing = tmp_path / "gone"

        with pytest.raises(ConfigurationError, match="gone"):
            RunContext.establish(restore_path=missing, start_dir=tmp_path)

        assert not missing.exists()

    def test_establish_restore_file(self, tmp_path) -> None:
        path = tmp_path / "session.log"
        path.write_text("")

        with pytest.raises(ConfigurationError):
            RunContext.establish(restore_path=path, start_dir=tmp_path)

    def test_session_log_is_shared(self, run_context) -> None:
        assert run_context.session_log is run_context.session_log
        assert run_context.session_log.path == run_context.session_path / "session.log"

    def test_handoff_path(self, run_context) -> None:
        assert run_context.handoff_path("backend") == run_context.session_path / "backend.mcp.json"

    def test_as_env(self, run_context) -> None:
        env = run_context.as_env()
        assert env == {
            SESSION_PATH_ENV: str(run_context.session_path),
            START_DIR_ENV: str(run_context.start_dir),
        }

    def test_from_env(self, monkeypatch, tmp_path) -> None:
        """Test that a child process rebuilds the parent's context."""
        monkeypatch.setenv(SESSION_PATH_ENV, str(tmp_path / "shared"))
        monkeypatch.setenv(START_DIR_ENV, str(tmp_path))

        context = RunContext.from_env()

        assert context.session_path == tmp_path / "shared"
        assert context.session_path.is_dir()
        assert context.start_dir == tmp_path
        assert context.restored is True

    def test_from_env_without_parent(self, swarm_home) -> None:
        context = RunContext.from_env()
        assert swarm_home in context.session_path.parents
        assert context.restored is False

    def test_close_reopens_lazily(self, run_context) -> None:
        first = run_context.session_log
        run_context.close()
        assert run_context.session_log is not first
