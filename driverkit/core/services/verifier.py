"""
Post-install verifier: re-examines the disk and the dynamic linker.

Two passes over the installed entries; neither mutates them.

1. Existence/identity. Symbolic links must point at exactly the
   expected target; regular files must exist, be regular files, carry
   exactly the requested permission bits and, when a checksum is
   known, hash to it. Findings are warnings: the installation still
   counts as done.

2. Runtime linkage. For each shared library whose name ends in a
   single-number soname suffix (``libGL.so.1``), the linker diagnostic
   tool (``ldd``) is run against a pre-built test binary linked to that
   library family, and the path the linker picks is compared with the
   installed path. Two paths naming the same device+inode are treated
   as equal. A native library the linker cannot find at all is a hard
   failure; a 32-bit library it cannot find is only a warning, since
   many hosts lack a 32-bit runtime.
"""

from __future__ import annotations

import hashlib
import logging
import os
import re
import stat

from driverkit.core.models.config import InstallConfig
from driverkit.core.models.entry import (
    INSTALLABLE_FILE_CATEGORIES,
    LINKAGE_CHECKED_CATEGORIES,
    PERM_MASK,
    AbiSelection,
    ArchClass,
    Category,
    Entry,
    mode_to_permission_string,
)
from driverkit.core.models.package import Package
from driverkit.core.models.report import VerificationReport
from driverkit.core.services.installer import (
    get_symlink_target,
    read_payload,
    remove_temp_file,
    write_temp_file,
)
from driverkit.core.services.process import Runner, collapse_multiple_slashes, field, run_command
from driverkit.core.services.reporter import Reporter

logger = logging.getLogger(__name__)

_SONAME_RE = re.compile(r"\.so\.\d+$")
_CHUNK = 1024 * 1024


# ── Helpers ─────────────────────────────────────────────────────


def installable_categories(config: InstallConfig) -> frozenset[Category]:
    """File categories considered installable under ``config``."""
    categories = set(INSTALLABLE_FILE_CATEGORIES)
    if not config.opengl_headers:
        categories.discard(Category.OPENGL_HEADER)
    return frozenset(categories)


def file_checksum(path: str) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK), b""):
            digest.update(chunk)
    return digest.hexdigest()


def same_file(a: str, b: str) -> bool:
    """True when both paths resolve to the same device and inode."""
    try:
        sa, sb = os.stat(a), os.stat(b)
    except OSError:
        return False
    return sa.st_dev == sb.st_dev and sa.st_ino == sb.st_ino


def _warn(report: VerificationReport, reporter: Reporter, message: str, path: str | None) -> None:
    report.warn(message, path)
    reporter.warn(message)


def _fail(report: VerificationReport, reporter: Reporter, message: str, path: str | None) -> None:
    report.fail(message, path)
    reporter.error(message)


# ── Pass 1: existence / identity ────────────────────────────────


def check_symlink(
    target: str,
    link: str,
    description: str,
    report: VerificationReport,
    reporter: Reporter,
) -> bool:
    """Check that ``link`` exists and points at exactly ``target``."""
    actual = get_symlink_target(link)
    if not actual["ok"]:
        _warn(
            report, reporter,
            f"The symbolic link '{link}' does not exist.  This is necessary for "
            f"correct operation of the {description}.  You can create this "
            f"symbolic link manually by executing `ln -sf {target} {link}`.",
            link,
        )
        return False

    actual_target = actual["target"]
    if actual_target != target:
        _warn(
            report, reporter,
            f"The symbolic link '{link}' does not point to '{target}' as is "
            f"necessary for correct operation of the {description}.  It is "
            f"possible that `ldconfig` has created this incorrect symbolic link "
            f"because {actual_target}'s \"soname\" conflicts with that of "
            f"{target}.  It is recommended that you remove or rename the file "
            f"'{actual_target}' and create the necessary symbolic link by "
            f"running `ln -sf {target} {link}`.",
            link,
        )
        return False
    return True


def check_file(
    path: str,
    mode: int,
    checksum: str | None,
    report: VerificationReport,
    reporter: Reporter,
) -> bool:
    """Check that ``path`` is a regular file with ``mode`` (and ``checksum``)."""
    try:
        st = os.lstat(path)
    except OSError as e:
        _warn(report, reporter, f"Unable to find installed file '{path}' ({e.strerror}).", path)
        return False

    if not stat.S_ISREG(st.st_mode):
        _warn(report, reporter, f"The installed file '{path}' is not of the correct filetype.", path)
        return False

    actual_mode = st.st_mode & PERM_MASK
    if actual_mode != mode & PERM_MASK:
        _warn(
            report, reporter,
            f"The installed file '{path}' has permissions {actual_mode:04o} "
            f"({mode_to_permission_string(actual_mode)}), but it was installed "
            f"with permissions {mode & PERM_MASK:04o} "
            f"({mode_to_permission_string(mode)}).",
            path,
        )
        return False

    if checksum:
        try:
            actual = file_checksum(path)
        except OSError as e:
            _warn(report, reporter, f"Unable to read installed file '{path}' ({e.strerror}).", path)
            return False
        if actual != checksum.lower():
            _warn(
                report, reporter,
                f"The installed file '{path}' has a different checksum ({actual}) "
                f"than when it was installed ({checksum}).",
                path,
            )
            return False
    return True


def check_installed_files(
    package: Package,
    config: InstallConfig,
    reporter: Reporter,
    report: VerificationReport | None = None,
) -> VerificationReport:
    """Run the existence/identity pass over every installed entry."""
    report = report or VerificationReport()
    categories = installable_categories(config)
    total = len(package.entries) or 1
    ok = True

    for i, entry in enumerate(package.entries):
        reporter.report_progress(i / total, entry.destination_path or entry.name)
        if entry.category is None or not entry.destination_path:
            continue

        if entry.is_symlink:
            report.checked += 1
            if not check_symlink(
                entry.symlink_target or "", entry.destination_path,
                package.description, report, reporter,
            ):
                ok = False
        elif entry.category in categories:
            report.checked += 1
            if not check_file(entry.destination_path, entry.mode, entry.checksum, report, reporter):
                ok = False

    reporter.report_progress(1.0, "done.")
    reporter.log("Post-install sanity check %s.", "passed" if ok else "failed")
    report.files_ok = report.files_ok and ok
    return report


# ── Pass 2: runtime linkage ─────────────────────────────────────


def parse_linker_output(output: str, library: str) -> str | None:
    """Path the linker resolved ``library`` to, or None if it did not.

    Reads ``ldd`` lines of the form ``libGL.so.1 => /usr/lib/libGL.so.1 (0x...)``.
    """
    for line in output.splitlines():
        if field(line, 1) != library:
            continue
        if field(line, 2) != "=>":
            return None
        resolved = field(line, 3)
        if resolved == "not" or not resolved.startswith("/"):
            return None
        return collapse_multiple_slashes(resolved)
    return None


def _linkage_candidates(
    entries: list[Entry],
    arch: ArchClass,
    selection: AbiSelection | None,
) -> list[Entry]:
    candidates = []
    for entry in entries:
        if entry.category not in LINKAGE_CHECKED_CATEGORIES or not entry.destination_path:
            continue
        if entry.arch != arch:
            continue
        if selection is not None:
            if selection.forced and entry.category == Category.TLS_LIB:
                continue
            if entry.abi is not None and entry.abi != selection.variant:
                continue
        if not _SONAME_RE.search(entry.name):
            continue
        candidates.append(entry)
    return candidates


def check_linkage(
    package: Package,
    arch: ArchClass,
    config: InstallConfig,
    reporter: Reporter,
    report: VerificationReport,
    selection: AbiSelection | None = None,
    runner: Runner = run_command,
) -> bool:
    """Linkage check for one architecture class. False only on hard failure."""
    candidates = _linkage_candidates(package.entries, arch, selection)
    if not candidates:
        return True

    compat = arch == ArchClass.COMPAT32
    data = read_payload(config.payloads.rtld(arch))
    if not data:
        _warn(
            report, reporter,
            "The runtime configuration test program is not present; "
            "assuming successful installation.",
            None,
        )
        return True

    written = write_temp_file(data, 0o700, config.tmpdir)
    if not written["ok"]:
        _warn(
            report, reporter,
            "Unable to create a temporary file for the runtime configuration "
            f"test program ({written['error']}); assuming successful installation.",
            None,
        )
        return True
    test_binary = written["path"]

    try:
        for entry in candidates:
            expected = entry.destination_path or ""
            result = runner([config.tools.ldd, test_binary])
            if not result["ok"]:
                if compat:
                    msg = (
                        f"Unable to perform the runtime configuration check for 32-bit "
                        f"library '{entry.name}' ('{expected}'); this is typically caused "
                        f"by the lack of a 32-bit compatibility environment.  Assuming "
                        f"successful installation."
                    )
                else:
                    msg = (
                        f"Unable to perform the runtime configuration check for library "
                        f"'{entry.name}' ('{expected}'); assuming successful installation."
                    )
                _warn(report, reporter, msg, expected)
                return True

            resolved = parse_linker_output(result.get("output", ""), entry.name)
            if resolved == expected:
                continue
            if resolved is not None and same_file(resolved, expected):
                logger.debug("%s resolves to %s (same file as %s)", entry.name, resolved, expected)
                continue

            if resolved is None and compat:
                _warn(
                    report, reporter,
                    f"The runtime configuration check failed for library '{entry.name}' "
                    f"(expected: '{expected}', found: (not found)).  The most likely "
                    f"reason for this is that the library was installed to the wrong "
                    f"location or that your system's dynamic loader configuration needs "
                    f"to be updated.  Please check the 32-bit OpenGL compatibility library "
                    f"installation prefix and/or the dynamic loader configuration.",
                    expected,
                )
                continue

            if resolved is None:
                _fail(
                    report, reporter,
                    f"The runtime configuration check failed for library '{entry.name}' "
                    f"(expected: '{expected}', found: (not found)).  The most likely "
                    f"reason for this is that the library was installed to the wrong "
                    f"location or that your system's dynamic loader configuration needs "
                    f"to be updated.  Please check the OpenGL library installation prefix "
                    f"and/or the dynamic loader configuration.",
                    expected,
                )
                return False

            _fail(
                report, reporter,
                f"The runtime configuration check failed for the library '{entry.name}' "
                f"(expected: '{expected}', found: '{resolved}').  The most likely reason "
                f"for this is that conflicting OpenGL libraries are installed in a "
                f"location not inspected by the installer.  Please be sure you have "
                f"uninstalled any third-party OpenGL and/or third-party graphics "
                f"driver packages.",
                expected,
            )
            return False
    finally:
        remove_temp_file(test_binary)

    return True


def check_runtime_configuration(
    package: Package,
    config: InstallConfig,
    reporter: Reporter,
    selections: dict[ArchClass, AbiSelection] | None = None,
    runner: Runner = run_command,
    report: VerificationReport | None = None,
) -> VerificationReport:
    """Linkage check for the 32-bit class (if any) and then the native class."""
    report = report or VerificationReport()
    selections = selections or {}
    ok = True

    order = [ArchClass.COMPAT32, ArchClass.NATIVE] if config.host_is_64bit else [ArchClass.NATIVE]
    for arch in order:
        if not check_linkage(
            package, arch, config, reporter, report, selections.get(arch), runner,
        ):
            ok = False
            break

    reporter.log("Runtime sanity check %s.", "passed" if ok else "failed")
    report.linkage_ok = report.linkage_ok and ok
    return report


def verify(
    package: Package,
    config: InstallConfig,
    reporter: Reporter,
    selections: dict[ArchClass, AbiSelection] | None = None,
    runner: Runner = run_command,
) -> VerificationReport:
    """Run both verification passes and return the combined report."""
    report = VerificationReport()
    check_installed_files(package, config, reporter, report)
    check_runtime_configuration(package, config, reporter, selections, runner, report)
    return report
