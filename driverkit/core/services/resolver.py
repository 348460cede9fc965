"""
Destination resolver: maps a classified entry to its final install path.

``resolve`` is a pure function of the entry's classification and the
installation configuration. It never rewrites the entry's stored
path, so resolving the same entry any number of times gives the same
answer.

Path shape::

    [compat32_prefix] + prefix + "/" + directory + "/" + name

with runs of ``/`` collapsed and an empty directory dropped.

On 64-bit hosts two distribution conventions adjust the directory
before dispatch:

    Debian, Ubuntu    the "lib64" segment becomes "lib" (64-bit
                      libraries live in lib/)
    Ubuntu, Gentoo    for 32-bit compatibility entries, the "lib"
                      segment becomes "lib32"

Only the first matching segment is renamed; the segments around it
are kept as they are.
"""

from __future__ import annotations

import logging

from driverkit.core.models.config import (
    DOT_DESKTOP_DST_PATH,
    INSTALLER_BINARY_DST_PATH,
    OPENGL_HEADER_DST_PATH,
    UTILITY_BINARY_DST_PATH,
    Distribution,
    InstallConfig,
)
from driverkit.core.models.entry import ArchClass, Category, Entry
from driverkit.core.services.process import collapse_multiple_slashes

logger = logging.getLogger(__name__)

_LIB64_TO_LIB = frozenset({Distribution.DEBIAN, Distribution.UBUNTU})
_LIB_TO_LIB32 = frozenset({Distribution.UBUNTU, Distribution.GENTOO})

# Categories installed below the OpenGL prefix at their stored path
_OPENGL_STORED = frozenset({
    Category.OPENGL_LIB,
    Category.OPENGL_SYMLINK,
    Category.TLS_LIB,
    Category.TLS_SYMLINK,
    Category.LIBGL_LA,
    Category.DOCUMENTATION,
})
_XLIB_STORED = frozenset({
    Category.XLIB_SHARED_LIB,
    Category.XLIB_STATIC_LIB,
    Category.XLIB_SYMLINK,
})
_XMODULE_STORED = frozenset({
    Category.XMODULE_SHARED_LIB,
    Category.XMODULE_STATIC_LIB,
    Category.XMODULE_SYMLINK,
})
_NEVER_INSTALLED = frozenset({
    Category.KERNEL_MODULE_SRC,
    Category.KERNEL_MODULE_CMD,
})


def _rename_segment(path: str, old: str, new: str) -> str | None:
    segments = [s for s in path.split("/") if s]
    try:
        idx = segments.index(old)
    except ValueError:
        return None
    segments[idx] = new
    prefix = "/" if path.startswith("/") else ""
    return prefix + "/".join(segments)


def adjust_library_dir(
    relative_path: str | None,
    arch: ArchClass,
    config: InstallConfig,
) -> str | None:
    """Apply the distribution library-directory conventions to a stored path."""
    if relative_path is None or not config.host_is_64bit:
        return relative_path

    if config.distribution in _LIB64_TO_LIB:
        renamed = _rename_segment(relative_path, "lib64", "lib")
        if renamed is not None:
            return renamed

    if arch == ArchClass.COMPAT32 and config.distribution in _LIB_TO_LIB32:
        renamed = _rename_segment(relative_path, "lib", "lib32")
        if renamed is not None:
            return renamed

    return relative_path


def _prefix_and_directory(
    entry: Entry,
    directory: str | None,
    config: InstallConfig,
) -> tuple[str, str] | None:
    category = entry.category

    if category in _OPENGL_STORED:
        return config.opengl_prefix, directory or ""
    if category in _XLIB_STORED:
        return config.xfree86_prefix, directory or ""
    if category in _XMODULE_STORED:
        return config.effective_x_module_path, directory or ""
    if category == Category.OPENGL_HEADER:
        return config.opengl_prefix, OPENGL_HEADER_DST_PATH
    if category == Category.INSTALLER_BINARY:
        return config.installer_prefix, INSTALLER_BINARY_DST_PATH
    if category == Category.UTILITY_BINARY:
        return config.utility_prefix, UTILITY_BINARY_DST_PATH
    if category == Category.DOT_DESKTOP:
        xdg_dir = config.first_xdg_data_dir
        if xdg_dir:
            return xdg_dir, "applications"
        return config.opengl_prefix, DOT_DESKTOP_DST_PATH
    return None


def join_destination(prefix: str, directory: str, name: str) -> str:
    parts = [prefix, directory, name] if directory else [prefix, name]
    return collapse_multiple_slashes("/".join(parts))


def resolve(entry: Entry, config: InstallConfig) -> str | None:
    """Compute the destination of ``entry``; None means "do not install".

    Kernel modules keep the destination they were given when they were
    added to the package.
    """
    if entry.category is None or entry.category in _NEVER_INSTALLED:
        return None
    if entry.category == Category.KERNEL_MODULE:
        return entry.destination_path

    directory = adjust_library_dir(entry.relative_path, entry.arch, config)
    pair = _prefix_and_directory(entry, directory, config)
    if pair is None:
        return None

    prefix, directory = pair
    destination = join_destination(prefix, directory, entry.name)

    if entry.arch == ArchClass.COMPAT32 and config.compat32_prefix:
        destination = collapse_multiple_slashes(f"{config.compat32_prefix}/{destination}")

    return destination


def resolve_destinations(entries: list[Entry], config: InstallConfig) -> int:
    """Fill ``destination_path`` on every entry, excluding what has no home.

    Returns:
        Number of entries left with a destination.
    """
    placed = 0
    for entry in entries:
        destination = resolve(entry, config)
        if destination is None:
            if entry.category is not None:
                logger.debug(
                    "no destination for %s (%s); excluding",
                    entry.name, entry.category.value,
                )
            entry.exclude()
            continue
        entry.destination_path = destination
        placed += 1
    return placed
