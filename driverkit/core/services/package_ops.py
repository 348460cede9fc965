"""
Package-level filters applied before classification.

These reshape the entry collection in place using the same exclusion
rule as everything else (clear the category, never remove).
"""

from __future__ import annotations

import logging
import os

from driverkit.core.models.config import InstallConfig
from driverkit.core.models.entry import Category, Entry
from driverkit.core.models.package import Package
from driverkit.core.services.reporter import Reporter

logger = logging.getLogger(__name__)

KERNEL_MODULE_MODE = 0o644


def exclude_compat32(package: Package, config: InstallConfig, reporter: Reporter) -> int:
    """Exclude every 32-bit compatibility entry when the operator opted out.

    Also warns when a compatibility root is configured but missing.
    """
    compat = [e for e in package.entries if e.is_compat32 and e.category is not None]
    if not compat:
        return 0

    if config.install_compat32 and config.compat32_prefix:
        if not os.path.exists(config.compat32_prefix):
            reporter.warn(
                "The 32-bit compatibility libraries are to be installed relative "
                "to the top-level prefix '%s'; however, this directory does not exist.",
                config.compat32_prefix,
            )

    if config.install_compat32:
        return 0

    for entry in compat:
        entry.exclude()
    reporter.log("Skipping %d 32-bit compatibility files.", len(compat))
    return len(compat)


def add_kernel_module(
    package: Package,
    build_directory: str,
    filename: str,
    config: InstallConfig,
) -> Entry:
    """Append the built kernel module with its destination already set."""
    destination = f"{config.kernel_module_installation_path}/{filename}"
    entry = Entry(
        source_path=os.path.join(build_directory, filename),
        category=Category.KERNEL_MODULE,
        mode=KERNEL_MODULE_MODE,
    )
    entry.destination_path = destination
    package.entries.append(entry)
    logger.debug("kernel module %s -> %s", entry.source_path, destination)
    return entry


def keep_only_kernel_module(package: Package) -> int:
    """Exclude every entry that is not the kernel module or its command."""
    excluded = 0
    for entry in package.entries:
        if entry.category not in (None, Category.KERNEL_MODULE, Category.KERNEL_MODULE_CMD):
            entry.exclude()
            excluded += 1
    return excluded


def exclude_headers(package: Package, config: InstallConfig) -> int:
    """Exclude OpenGL header entries unless the operator asked for them."""
    if config.opengl_headers:
        return 0
    excluded = 0
    for entry in package.entries:
        if entry.category == Category.OPENGL_HEADER:
            entry.exclude()
            excluded += 1
    if excluded:
        logger.debug("skipping %d OpenGL header files", excluded)
    return excluded
