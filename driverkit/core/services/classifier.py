"""
Library-variant classifier: decide which TLS library build the host can run.

The driver ships its OpenGL libraries twice, once built with classic
thread-local storage and once with the newer TLS model. Which set
works depends on the host's C library, so the decision is made
empirically: a small pre-built test program and its companion shared
object are written to temporary files and executed. Exit status 0
selects the new variant; anything else selects the classic one.

Probing never fails, it only degrades:

    operator override present       -> use it, skip probing
    payload missing / temp failure  -> warn, classic
    security context cannot be set  -> warn, new (the host is recent
                                       enough to enforce SELinux)

Native and 32-bit compatibility builds are probed independently, each
with its own payload and override.
"""

from __future__ import annotations

import logging

from driverkit.core.models.config import InstallConfig
from driverkit.core.models.entry import AbiClass, AbiSelection, ArchClass, Entry
from driverkit.core.models.package import Package
from driverkit.core.services.installer import read_payload, remove_temp_file, write_temp_file
from driverkit.core.services.process import Runner, run_command
from driverkit.core.services.reporter import Reporter

logger = logging.getLogger(__name__)

PROBE_MODE = 0o700


def _label(arch: ArchClass) -> str:
    return "32bit " if arch == ArchClass.COMPAT32 else ""


def set_security_context(
    path: str,
    config: InstallConfig,
    runner: Runner = run_command,
) -> bool:
    """Label ``path`` as a shared library when SELinux is enabled.

    Returns True when SELinux is disabled or ``chcon`` succeeded.
    """
    if not config.selinux_enabled:
        return True
    result = runner([config.tools.chcon, "-t", config.selinux_chcon_type, path])
    return bool(result["ok"])


def probe_abi(
    arch: ArchClass,
    config: InstallConfig,
    reporter: Reporter,
    runner: Runner = run_command,
) -> AbiSelection:
    """Run the TLS test for ``arch`` and return the selected variant."""
    forced = config.forced_abi_for(arch)
    if forced is not None:
        return AbiSelection(
            arch=arch, variant=forced, forced=True, reason="forced by configuration",
        )

    if arch == ArchClass.COMPAT32 and not config.host_is_64bit:
        return AbiSelection(
            arch=arch, variant=AbiClass.CLASSIC_TLS,
            reason="no 32-bit compatibility environment on this host",
        )

    def classic(reason: str) -> AbiSelection:
        return AbiSelection(arch=arch, variant=AbiClass.CLASSIC_TLS, reason=reason)

    test_path, dso_path = config.payloads.tls_pair(arch)
    test_data = read_payload(test_path)
    dso_data = read_payload(dso_path)
    if not test_data or not dso_data:
        reporter.warn(
            "The %sthread local storage test program is not present; "
            "assuming classic tls.", _label(arch),
        )
        return classic("test program not present")

    test_file = dso_file = None
    try:
        written = write_temp_file(test_data, PROBE_MODE, config.tmpdir)
        if not written["ok"]:
            reporter.warn(
                "Unable to create temporary file for thread local storage "
                "test program (%s); assuming classic tls.", written["error"],
            )
            return classic("temporary file failure")
        test_file = written["path"]

        written = write_temp_file(dso_data, PROBE_MODE, config.tmpdir)
        if not written["ok"]:
            reporter.warn(
                "Unable to create temporary file for thread local storage "
                "test program (%s); assuming classic tls.", written["error"],
            )
            return classic("temporary file failure")
        dso_file = written["path"]

        if not set_security_context(dso_file, config, runner):
            reporter.warn(
                "Unable to set the security context on file %s; assuming new tls.",
                dso_file,
            )
            return AbiSelection(
                arch=arch, variant=AbiClass.NEW_TLS,
                reason="security context rejected",
            )

        result = runner([test_file, dso_file])
        if result["ok"]:
            return AbiSelection(arch=arch, variant=AbiClass.NEW_TLS, reason="test passed")
        logger.debug("tls test exited with status %s", result.get("status"))
        return classic(f"test exited with status {result.get('status')}")
    finally:
        remove_temp_file(test_file)
        remove_temp_file(dso_file)


def apply_selection(entries: list[Entry], selection: AbiSelection) -> int:
    """Exclude every ``selection.arch`` entry built for the other ABI variant.

    Returns:
        Number of entries excluded by this call.
    """
    excluded = 0
    for entry in entries:
        if entry.arch != selection.arch or entry.abi is None:
            continue
        if entry.abi != selection.variant and entry.category is not None:
            entry.exclude()
            excluded += 1
    return excluded


def classify(
    entries: list[Entry],
    arch: ArchClass,
    config: InstallConfig,
    reporter: Reporter,
    runner: Runner = run_command,
) -> AbiSelection:
    """Probe ``arch`` and exclude the entries of the losing variant."""
    selection = probe_abi(arch, config, reporter, runner)
    excluded = apply_selection(entries, selection)

    variant = "new" if selection.variant == AbiClass.NEW_TLS else "classic"
    reporter.log(
        "Installing %s TLS %sOpenGL libraries (%s).", variant, _label(arch), selection.reason,
    )
    logger.debug("excluded %d %s entries of the other ABI variant", excluded, arch.value)
    return selection


def classify_package(
    package: Package,
    config: InstallConfig,
    reporter: Reporter,
    runner: Runner = run_command,
) -> dict[ArchClass, AbiSelection]:
    """Classify every architecture class present in ``package``.

    Must complete before destinations are resolved.
    """
    selections: dict[ArchClass, AbiSelection] = {}
    for arch in package.arch_classes():
        selections[arch] = classify(package.entries, arch, config, reporter, runner)
    return selections
