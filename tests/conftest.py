"""Root pytest configuration for all tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from agentswarm.session.context import RunContext

pytest_plugins = ("pytest_asyncio",)


@pytest.fixture(autouse=True)
def swarm_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep session directories out of the real home directory."""
    home = tmp_path / ".agentswarm"
    monkeypatch.setenv("AGENTSWARM_HOME", str(home))
    monkeypatch.delenv("AGENTSWARM_SESSION_PATH", raising=False)
    monkeypatch.delenv("AGENTSWARM_START_DIR", raising=False)
    return home


@pytest.fixture
def session_path(tmp_path: Path) -> Path:
    path = tmp_path / "test_session"
    path.mkdir()
    return path


@pytest.fixture
def run_context(session_path: Path, tmp_path: Path):
    context = RunContext(session_path, tmp_path)
    yield context
    context.close()
