"""
Host detection: resolved once at startup, handed on as configuration.

Read-only probes for the distribution, SELinux, the XDG data
directories, tool locations, the temporary directory and the X
module directory. ``detect_environment`` fills every value the
operator left unset in ``InstallConfig``; nothing downstream reads
the environment on its own.
"""

from __future__ import annotations

import logging
import os
import platform
import shutil
from pathlib import Path

from driverkit.core.models.config import Distribution, InstallConfig, ToolPaths
from driverkit.core.services.process import Runner, run_command

logger = logging.getLogger(__name__)

_64BIT_MACHINES = ("x86_64", "amd64", "aarch64", "arm64", "ppc64le")


# ── Distribution ────────────────────────────────────────────────


def detect_distribution(root: Path = Path("/")) -> Distribution:
    """Identify the distribution from its release marker files.

    Checked in order: SuSE, UnitedLinux and Gentoo release files,
    ``DISTRIB_ID=Ubuntu`` in lsb-release, ``debian_version``, then the
    ``ID=`` line of os-release.
    """
    etc = root / "etc"

    if (etc / "SuSE-release").exists():
        return Distribution.SUSE
    if (etc / "UnitedLinux-release").exists():
        return Distribution.UNITED_LINUX
    if (etc / "gentoo-release").exists():
        return Distribution.GENTOO

    distrib_id = _read_key(etc / "lsb-release", "DISTRIB_ID")
    if distrib_id is not None and distrib_id.lower() == "ubuntu":
        return Distribution.UBUNTU

    if (etc / "debian_version").exists():
        return Distribution.DEBIAN

    os_id = (_read_key(etc / "os-release", "ID") or "").lower()
    by_id = {
        "ubuntu": Distribution.UBUNTU,
        "debian": Distribution.DEBIAN,
        "gentoo": Distribution.GENTOO,
        "sles": Distribution.SUSE,
        "opensuse": Distribution.SUSE,
        "opensuse-leap": Distribution.SUSE,
        "opensuse-tumbleweed": Distribution.SUSE,
    }
    return by_id.get(os_id, Distribution.OTHER)


def _read_key(path: Path, key: str) -> str | None:
    """Return the value of ``KEY=value`` in a shell-style release file."""
    try:
        with open(path, encoding="utf-8") as f:
            for line in f:
                name, sep, value = line.strip().partition("=")
                if sep and name.strip() == key:
                    return value.strip().strip('"').strip("'")
    except OSError:
        return None
    return None


# ── Host facts ──────────────────────────────────────────────────


def host_is_64bit(machine: str | None = None) -> bool:
    return (machine or platform.machine()).lower() in _64BIT_MACHINES


def detect_selinux(runner: Runner = run_command) -> bool:
    """True when ``selinuxenabled`` is installed and exits 0."""
    binary = shutil.which("selinuxenabled")
    if not binary:
        return False
    return runner([binary])["ok"]


def find_tools(current: ToolPaths | None = None) -> ToolPaths:
    """Resolve tool names to absolute paths via the search path.

    Names that cannot be found are kept as given.
    """
    current = current or ToolPaths()
    resolved = {}
    for name, value in current.model_dump().items():
        if os.path.isabs(value):
            resolved[name] = value
            continue
        resolved[name] = shutil.which(value) or value
    return ToolPaths(**resolved)


def select_tmpdir() -> str | None:
    """First existing directory of ``$TMPDIR``, ``/tmp``, ``.``, ``$HOME``."""
    for candidate in (os.environ.get("TMPDIR"), "/tmp", ".", os.environ.get("HOME")):
        if candidate and os.path.isdir(candidate):
            return candidate
    return None


def detect_x_module_path(
    config: InstallConfig,
    runner: Runner = run_command,
) -> str:
    """Work out where X driver modules go.

    An explicit ``x_module_path`` wins. Otherwise ask pkg-config for
    the xorg-server module directory, and fall back to
    ``InstallConfig.effective_x_module_path``.
    """
    if config.x_module_path:
        return config.x_module_path

    result = runner(
        [config.tools.pkg_config, "--variable=moduledir", "xorg-server"],
        redirect_stderr=False,
    )
    moduledir = result.get("output", "").strip()
    if result["ok"] and moduledir and os.path.isdir(moduledir):
        return moduledir.rstrip("/") or "/"

    return config.effective_x_module_path


def detect_environment(
    config: InstallConfig,
    *,
    explicit: set[str] | None = None,
    runner: Runner = run_command,
    root: Path = Path("/"),
) -> InstallConfig:
    """Return a copy of ``config`` with host-dependent values filled in.

    Args:
        config: Configuration as loaded from file/CLI.
        explicit: Field names the operator set explicitly; those are
            never overwritten. Defaults to ``config.model_fields_set``.
        runner: Process collaborator used for probes.
        root: Filesystem root for release-file lookups.
    """
    explicit = set(config.model_fields_set if explicit is None else explicit)
    updates: dict = {}

    if "distribution" not in explicit:
        updates["distribution"] = detect_distribution(root)
    if "host_is_64bit" not in explicit:
        updates["host_is_64bit"] = host_is_64bit()
    if "xdg_data_dirs" not in explicit:
        updates["xdg_data_dirs"] = os.environ.get("XDG_DATA_DIRS") or None
    if "selinux_enabled" not in explicit:
        updates["selinux_enabled"] = detect_selinux(runner)
    if "tmpdir" not in explicit:
        updates["tmpdir"] = select_tmpdir()
    updates["tools"] = find_tools(config.tools)

    detected = config.model_copy(update=updates)
    detected = detected.model_copy(
        update={"x_module_path": detect_x_module_path(detected, runner)},
    )

    logger.info(
        "Environment: distribution=%s 64bit=%s selinux=%s x_module_path=%s",
        detected.distribution.value,
        detected.host_is_64bit,
        detected.selinux_enabled,
        detected.x_module_path,
    )
    return detected
