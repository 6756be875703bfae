"""Diagnostic logging for agentswarm.

Two kinds of output exist for a run. The session log (agentswarm.session.log)
is the transcript of prompts, thinking and results the operator reads after
the fact. This module covers the other kind: what the orchestrator and the
executors are doing internally, for someone debugging a swarm.

How much is shown is picked with ``verbose`` in the swarm file's ``logging``
section, or on the command line where each ``-v`` adds one level to the
default:

    0  errors only
    1  warnings: malformed stream lines, servers that fail to stop (default)
    2  orchestration: before commands, session path, servers listening, tasks
    3  per turn: the external CLI's argv, session ids, results
    4  stream events the parser skips

Records go to the file named by ``logging.file`` or ``AGENTSWARM_LOG``.
Without one they go to stderr, and only when stderr is a terminal, so
nothing lands in a pipe the caller is parsing.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from agentswarm.config.schema import LoggingConfig

LOG_FILE_ENV = "AGENTSWARM_LOG"

# Per-turn detail sits between INFO and DEBUG; skipped stream events below DEBUG
VERBOSE = 15
TRACE = 5

logging.addLevelName(VERBOSE, "VERBOSE")
logging.addLevelName(TRACE, "TRACE")

DEFAULT_LEVEL = logging.WARNING

_VERBOSITY_LEVELS = (logging.ERROR, logging.WARNING, logging.INFO, VERBOSE, TRACE)

logger = logging.getLogger("agentswarm")

_initialized = False


class _ComponentFormatter(logging.Formatter):
    """``12:30:45 info executor: message``, naming the component not the package."""

    def format(self, record: logging.LogRecord) -> str:
        record.levelname = record.levelname.lower()
        prefix = logger.name + "."
        record.component = record.name[len(prefix):] if record.name.startswith(prefix) else record.name
        return super().format(record)


def level_for_verbosity(verbose: int) -> int:
    """Map a ``-v`` count to a level, clamping to the 0-4 range."""
    index = min(max(verbose, 0), len(_VERBOSITY_LEVELS) - 1)
    return _VERBOSITY_LEVELS[index]


def resolve_level(config: LoggingConfig | None) -> int:
    """Effective level for ``config``.

    ``verbose`` wins over ``level``. A level name logging does not know
    falls back to the default.
    """
    if config is None:
        return DEFAULT_LEVEL
    if config.verbose is not None:
        return level_for_verbosity(config.verbose)
    if config.level:
        level = logging.getLevelName(config.level.upper())
        if isinstance(level, int):
            return level
    return DEFAULT_LEVEL


def setup_logging(config: LoggingConfig | None = None) -> int:
    """Attach handlers to the ``agentswarm`` logger.

    Only the first call per process has an effect; ``agentswarm serve``
    and ``agentswarm start`` each call it once after loading the swarm file.

    Returns:
        The level the logger was set to.
    """
    global _initialized
    if _initialized:
        return logger.level
    _initialized = True

    level = resolve_level(config)
    logger.setLevel(level)
    formatter = _ComponentFormatter(
        "%(asctime)s %(levelname)s %(component)s: %(message)s", datefmt="%H:%M:%S"
    )

    path = (config.file if config else None) or os.environ.get(LOG_FILE_ENV)
    if path:
        try:
            handler: logging.Handler = logging.FileHandler(
                os.path.expanduser(path), mode="a", encoding="utf-8"
            )
        except OSError as e:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(formatter)
            logger.addHandler(handler)
            logger.warning("Cannot open log file %s, logging to stderr: %s", path, e)
            return level
    elif sys.stderr.isatty():
        handler = logging.StreamHandler(sys.stderr)
    else:
        return level

    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return level


def get_logger(name: str | None = None) -> logging.Logger:
    """Logger for one component, e.g. ``get_logger("executor")``."""
    return logger.getChild(name) if name else logger
