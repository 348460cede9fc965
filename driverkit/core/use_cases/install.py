"""
Use case: install a driver package.

Runs the phases in order, each to completion before the next:

    filter     headers, 32-bit opt-out, kernel module entry
    classify   ABI probe per architecture class
    render     templates become appended entries
    resolve    destination for every entry
    install    bytes (and links) on disk
    verify     files, then runtime linkage

Rendered template files are temporary and are removed on every exit
path.
"""

from __future__ import annotations

import logging

from driverkit.core.models.config import InstallConfig
from driverkit.core.models.entry import AbiSelection, ArchClass
from driverkit.core.models.package import Package
from driverkit.core.models.report import InstallResult
from driverkit.core.services.classifier import classify_package
from driverkit.core.services.installer import install_file, install_symlink
from driverkit.core.services.package_ops import (
    add_kernel_module,
    exclude_compat32,
    exclude_headers,
    keep_only_kernel_module,
)
from driverkit.core.services.process import Runner, run_command
from driverkit.core.services.reporter import Reporter
from driverkit.core.services.resolver import resolve_destinations
from driverkit.core.services.templates import cleanup_rendered, render_templates
from driverkit.core.services.verifier import verify

logger = logging.getLogger(__name__)


def prepare_package(
    package: Package,
    config: InstallConfig,
    reporter: Reporter,
    runner: Runner = run_command,
) -> dict[ArchClass, AbiSelection]:
    """Filter, classify, render and resolve ``package`` in place."""
    if (
        package.kernel_module_build_directory
        and package.kernel_module_filename
        and config.kernel_module_installation_path
    ):
        add_kernel_module(
            package,
            package.kernel_module_build_directory,
            package.kernel_module_filename,
            config,
        )
    if config.kernel_module_only:
        keep_only_kernel_module(package)

    exclude_headers(package, config)
    exclude_compat32(package, config, reporter)
    selections = classify_package(package, config, reporter, runner)
    package.entries = render_templates(package.entries, config, reporter)
    placed = resolve_destinations(package.entries, config)
    logger.info("%d of %d entries have a destination", placed, len(package.entries))
    return selections


def install_entries(package: Package, reporter: Reporter) -> InstallResult:
    """Install every entry that has a destination; stop at the first failure."""
    result = InstallResult()
    entries = package.installable()
    total = len(entries) or 1

    for i, entry in enumerate(entries):
        destination = entry.destination_path or ""
        reporter.report_progress(i / total, destination)

        if entry.is_symlink:
            outcome = install_symlink(entry.symlink_target or "", destination)
        else:
            outcome = install_file(entry.source_path, destination, entry.mode)

        if not outcome["ok"]:
            reporter.error("Unable to install '%s': %s", destination, outcome["error"])
            result.ok = False
            result.error = outcome["error"]
            return result
        result.installed.append(destination)

    reporter.report_progress(1.0, "done.")
    return result


def _selected(selections: dict[ArchClass, AbiSelection]) -> dict[str, str]:
    return {arch.value: sel.variant.value for arch, sel in selections.items()}


def plan_install(
    package: Package,
    config: InstallConfig,
    reporter: Reporter,
    runner: Runner = run_command,
) -> InstallResult:
    """Classify and resolve without touching the destination tree."""
    try:
        selections = prepare_package(package, config, reporter, runner)
        return InstallResult(
            selected_abi=_selected(selections),
            installed=[e.destination_path or "" for e in package.installable()],
        )
    finally:
        cleanup_rendered(package.entries)


def run_install(
    package: Package,
    config: InstallConfig,
    reporter: Reporter,
    runner: Runner = run_command,
    run_verification: bool = True,
) -> InstallResult:
    """Full installation run.

    Verification findings about files are advisory; a native library
    the linker cannot resolve fails the run.
    """
    try:
        selections = prepare_package(package, config, reporter, runner)
        result = install_entries(package, reporter)
        result.selected_abi = _selected(selections)
        if not result.ok:
            return result

        reporter.log("Installed %d files.", len(result.installed))
        if run_verification:
            report = verify(package, config, reporter, selections, runner)
            result.verification = report
            if not report.linkage_ok:
                result.ok = False
                result.error = "Runtime linkage check failed."
        return result
    finally:
        cleanup_rendered(package.entries)


def verify_install(
    package: Package,
    config: InstallConfig,
    reporter: Reporter,
    runner: Runner = run_command,
) -> InstallResult:
    """Re-check an existing installation of ``package``."""
    try:
        selections = prepare_package(package, config, reporter, runner)
        report = verify(package, config, reporter, selections, runner)
        return InstallResult(
            ok=report.passed,
            error=None if report.passed else "Verification reported problems.",
            selected_abi=_selected(selections),
            verification=report,
        )
    finally:
        cleanup_rendered(package.entries)
