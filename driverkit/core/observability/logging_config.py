"""
Logging configuration for the installer: two channels on stderr.

Called once at startup by main.py.

    module loggers   ``logging.getLogger(__name__)`` everywhere; the
                     developer-facing trace, quiet unless -v/--debug
    operator channel the ``driverkit.ui`` logger fed by ``Reporter``;
                     progress lines and the TLS / sanity-check
                     verdicts, shown at INFO by default

Module levels: CLI flag  >  DRIVERKIT_LOG_LEVEL  >  WARNING.
Operator level: DRIVERKIT_UI_LOG_LEVEL, else ``ui_level_for(module level)``.

Optional file output via DRIVERKIT_LOG_FILE / DRIVERKIT_LOG_FILE_LEVEL
receives both channels.
"""

from __future__ import annotations

import logging
import sys

UI_LOGGER = "driverkit.ui"

# ── Format strings ──────────────────────────────────────────────

# Operator messages and WARNING-level traces: the text only
_FMT_MINIMAL = "%(message)s"

# INFO traces carry the time and module
_FMT_VERBOSE = "%(asctime)s [%(name)s] %(message)s"
_DATEFMT_VERBOSE = "%H:%M:%S"

# DEBUG traces add file:line
_FMT_DEBUG = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d %(message)s"
_DATEFMT_DEBUG = "%H:%M:%S"

# Install logs are read after the fact, so the file always gets full detail
_FMT_FILE = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    ui_level: str | None = None,
) -> None:
    """Configure both logging channels for the process.

    Args:
        level: Level name for module loggers (DEBUG .. CRITICAL).
        log_file: Optional path to a log file shared by both channels.
        log_file_level: Level for the log file; defaults to ``level``.
        ui_level: Level for the operator channel; see ``ui_level_for``.
    """
    numeric_level = _parse_level(level)
    ui_numeric = _parse_level(ui_level) if ui_level else ui_level_for(numeric_level)

    if numeric_level <= logging.DEBUG:
        fmt, datefmt = _FMT_DEBUG, _DATEFMT_DEBUG
    elif numeric_level <= logging.INFO:
        fmt, datefmt = _FMT_VERBOSE, _DATEFMT_VERBOSE
    else:
        fmt, datefmt = _FMT_MINIMAL, None

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    ui_console = logging.StreamHandler(sys.stderr)
    ui_console.setLevel(ui_numeric)
    ui_console.setFormatter(logging.Formatter(_FMT_MINIMAL))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)

    # Operator messages never reach the root console handler
    ui = logging.getLogger(UI_LOGGER)
    ui.handlers.clear()
    ui.propagate = False
    ui.addHandler(ui_console)

    root_level, ui_effective = numeric_level, ui_numeric

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else numeric_level
        root_level = min(root_level, file_level)
        ui_effective = min(ui_effective, file_level)

        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
        root.addHandler(fh)
        ui.addHandler(fh)

    root.setLevel(root_level)
    ui.setLevel(ui_effective)

    logging.raiseExceptions = False


def ui_level_for(numeric_level: int) -> int:
    """Default operator-channel level for a given module level.

    INFO normally; follows the module level when it is more verbose
    (DEBUG) or when --quiet pushed it past WARNING.
    """
    if numeric_level > logging.WARNING:
        return numeric_level
    return min(numeric_level, logging.INFO)


def _parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric
