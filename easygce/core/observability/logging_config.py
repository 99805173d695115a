"""
Logging configuration for the easygce CLI.

``setup_logging`` runs once from the click group in main.py; modules only
ever call ``logging.getLogger(__name__)``.

Console level, highest precedence first:
    --debug  >  --verbose  >  --quiet  >  EASYGCE_LOG_LEVEL  >  WARNING

EASYGCE_LOG_FILE adds a file handler, at EASYGCE_LOG_FILE_LEVEL if set.
Everything goes to stderr; stdout is reserved for reports and ``--json``.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

# ── Formats ─────────────────────────────────────────────────────

_CLOCK = "%H:%M:%S"

# (highest level, format, datefmt); first match wins
_CONSOLE_FORMATS: list[tuple[int, str, str | None]] = [
    (logging.DEBUG, "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d  %(message)s", _CLOCK),
    (logging.INFO, "%(asctime)s [%(name)s] %(message)s", _CLOCK),
    (logging.CRITICAL, "%(message)s", None),
]

_FILE_FORMAT = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d  %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"


def resolve_level(
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    env_level: str | None = None,
) -> str:
    """Pick the console level from CLI flags and the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return env_level or "WARNING"


def _console_formatter(numeric_level: int) -> logging.Formatter:
    for threshold, fmt, datefmt in _CONSOLE_FORMATS:
        if numeric_level <= threshold:
            return logging.Formatter(fmt, datefmt=datefmt)
    return logging.Formatter("%(levelname)s: %(message)s")


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Configure the root logger for this process.

    Args:
        level: Console level name; unknown names mean WARNING.
        log_file: Optional log file path. Parent directories are created.
        log_file_level: Level for the file; defaults to ``level``.
    """
    console_level = _parse_level(level)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(_console_formatter(console_level))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    root_level = console_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setLevel(file_level)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
        root.addHandler(file_handler)
        # the root must pass records down to the more verbose of the two
        root_level = min(root_level, file_level)

    root.setLevel(root_level)
    logging.raiseExceptions = False


def _parse_level(level: str | None) -> int:
    if not level:
        return logging.WARNING
    numeric = logging.getLevelName(level.upper())
    return numeric if isinstance(numeric, int) else logging.WARNING
