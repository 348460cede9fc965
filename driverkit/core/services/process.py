"""
Process-execution collaborator.

The SINGLE PLACE where ``subprocess.run`` is called by the installer
core: ABI probes, the linker diagnostic tool, ``chcon`` and
``pkg-config`` all go through ``run_command``. Calls are synchronous
and carry no timeout; a hung probe hangs the run.

Callers receive the result-dict convention::

    {"ok": True,  "status": 0, "output": "..."}
    {"ok": False, "status": 1, "output": "...", "error": "Command failed (exit 1)"}
"""

from __future__ import annotations

import logging
import re
import subprocess
from typing import Any, Callable

logger = logging.getLogger(__name__)

Runner = Callable[..., dict[str, Any]]

# Status reported when the command could not be started at all.
SPAWN_FAILURE_STATUS = 127


def run_command(
    cmd: list[str],
    *,
    redirect_stderr: bool = True,
) -> dict[str, Any]:
    """Run a command and capture its output.

    Args:
        cmd: Command list for ``subprocess.run()``.
        redirect_stderr: Fold stderr into the returned output.

    Returns:
        Result dict with ``ok``, ``status`` and ``output``; failures
        also carry ``error``. A trailing newline is stripped from output.
    """
    logger.debug("executing: %s", " ".join(cmd))
    try:
        result = subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT if redirect_stderr else subprocess.DEVNULL,
        )
    except OSError as e:
        logger.debug("spawn failed for %s: %s", cmd[0] if cmd else "", e)
        return {
            "ok": False,
            "status": SPAWN_FAILURE_STATUS,
            "output": "",
            "error": f"Failure executing command '{' '.join(cmd)}' ({e.strerror or e})",
        }

    output = result.stdout.decode("utf-8", errors="replace") if result.stdout else ""
    if output.endswith("\n"):
        output = output[:-1]

    if result.returncode == 0:
        return {"ok": True, "status": 0, "output": output}

    return {
        "ok": False,
        "status": result.returncode,
        "output": output,
        "error": f"Command failed (exit {result.returncode})",
    }


# ── Output helpers ──────────────────────────────────────────────


def field(line: str, index: int) -> str:
    """Return the whitespace-separated field at ``index`` (1-based), or ''."""
    parts = line.split()
    if 1 <= index <= len(parts):
        return parts[index - 1]
    return ""


def collapse_multiple_slashes(path: str) -> str:
    """Squeeze runs of ``/`` into a single separator."""
    return re.sub(r"/{2,}", "/", path)

