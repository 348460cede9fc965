"""
Entry model: one candidate file from a driver package.

Every file extracted from the driver distribution becomes an Entry.
Classification happens on three independent axes:

    category   what kind of file this is (None = excluded)
    arch       native build or 32-bit compatibility build
    abi        classic or new thread-local-storage build (None = not TLS-sensitive)

Exclusion is always expressed by clearing ``category`` through
``Entry.exclude()``; entries are never removed from a collection.
"""

from __future__ import annotations

import os
from enum import Enum

from pydantic import BaseModel, model_validator


class Category(str, Enum):
    """Installable-file type of an entry."""

    KERNEL_MODULE = "kernel_module"
    KERNEL_MODULE_SRC = "kernel_module_src"
    KERNEL_MODULE_CMD = "kernel_module_cmd"
    OPENGL_LIB = "opengl_lib"
    OPENGL_SYMLINK = "opengl_symlink"
    OPENGL_HEADER = "opengl_header"
    XLIB_SHARED_LIB = "xlib_shared_lib"
    XLIB_STATIC_LIB = "xlib_static_lib"
    XLIB_SYMLINK = "xlib_symlink"
    XMODULE_SHARED_LIB = "xmodule_shared_lib"
    XMODULE_STATIC_LIB = "xmodule_static_lib"
    XMODULE_SYMLINK = "xmodule_symlink"
    TLS_LIB = "tls_lib"
    TLS_SYMLINK = "tls_symlink"
    LIBGL_LA = "libgl_la"
    DOCUMENTATION = "documentation"
    INSTALLER_BINARY = "installer_binary"
    UTILITY_BINARY = "utility_binary"
    DOT_DESKTOP = "dot_desktop"


class ArchClass(str, Enum):
    """Native build vs. 32-bit compatibility build."""

    NATIVE = "native"
    COMPAT32 = "compat32"


class AbiClass(str, Enum):
    """Classic vs. new thread-local-storage library build."""

    CLASSIC_TLS = "classic_tls"
    NEW_TLS = "new_tls"


# ── Category groups ─────────────────────────────────────────────

SYMLINK_CATEGORIES: frozenset[Category] = frozenset({
    Category.OPENGL_SYMLINK,
    Category.XLIB_SYMLINK,
    Category.XMODULE_SYMLINK,
    Category.TLS_SYMLINK,
})

# Regular files the verifier may stat after installation.
INSTALLABLE_FILE_CATEGORIES: frozenset[Category] = frozenset({
    Category.KERNEL_MODULE,
    Category.OPENGL_LIB,
    Category.OPENGL_HEADER,
    Category.XLIB_SHARED_LIB,
    Category.XLIB_STATIC_LIB,
    Category.XMODULE_SHARED_LIB,
    Category.XMODULE_STATIC_LIB,
    Category.TLS_LIB,
    Category.LIBGL_LA,
    Category.DOCUMENTATION,
    Category.INSTALLER_BINARY,
    Category.UTILITY_BINARY,
    Category.DOT_DESKTOP,
})

# Libraries whose runtime resolution is checked with the linker.
LINKAGE_CHECKED_CATEGORIES: frozenset[Category] = frozenset({
    Category.OPENGL_LIB,
    Category.TLS_LIB,
})

# Categories rendered from a template before installation.
TEMPLATE_CATEGORIES: frozenset[Category] = frozenset({
    Category.LIBGL_LA,
    Category.DOT_DESKTOP,
})

PERM_MASK = 0o7777


class Entry(BaseModel):
    """One candidate filesystem object and its classification.

    ``source_path`` is where the file sits in the extracted package,
    ``relative_path`` is the directory below the install prefix the
    package asked for, and ``destination_path`` is filled in by the
    resolver (None = not installed).
    """

    source_path: str
    relative_path: str | None = None
    symlink_target: str | None = None
    destination_path: str | None = None
    name: str = ""
    mode: int = 0o644
    checksum: str | None = None     # sha256 hex of the source, if known

    category: Category | None = None
    arch: ArchClass = ArchClass.NATIVE
    abi: AbiClass | None = None

    # True for entries produced by template rendering
    generated: bool = False

    @model_validator(mode="after")
    def _derive_name(self) -> Entry:
        if not self.name:
            self.name = os.path.basename(self.source_path.rstrip("/"))
        if self.category is None:
            self.destination_path = None
        return self

    # ── Classification helpers ──────────────────────────────────

    @property
    def is_excluded(self) -> bool:
        return self.category is None

    @property
    def is_symlink(self) -> bool:
        return self.category in SYMLINK_CATEGORIES

    @property
    def is_compat32(self) -> bool:
        return self.arch == ArchClass.COMPAT32

    def exclude(self) -> None:
        """Drop this entry from the installation (category and destination)."""
        self.category = None
        self.destination_path = None

    def derive(self, source_path: str, category: Category) -> Entry:
        """Build a new entry from this one with a different source and category.

        Architecture/ABI class, mode, name and stored path carry over.
        """
        return Entry(
            source_path=source_path,
            relative_path=self.relative_path,
            name=self.name,
            mode=self.mode,
            category=category,
            arch=self.arch,
            abi=self.abi,
            generated=True,
        )


def mode_from_string(value: str) -> int:
    """Parse an octal permission string such as ``"0755"``.

    Raises:
        ValueError: If the string is not a valid octal mode.
    """
    text = value.strip()
    if not text:
        raise ValueError("empty permission string")
    mode = int(text, 8)
    if mode < 0 or mode > PERM_MASK:
        raise ValueError(f"permission string out of range: {value!r}")
    return mode


def mode_to_permission_string(mode: int) -> str:
    """Render the low nine mode bits as ``rwxr-xr-x``."""
    chars = []
    for shift, letter in zip(range(8, -1, -1), "rwxrwxrwx"):
        chars.append(letter if mode & (1 << shift) else "-")
    return "".join(chars)


class AbiSelection(BaseModel):
    """Outcome of ABI-variant classification for one architecture class."""

    arch: ArchClass
    variant: AbiClass
    forced: bool = False        # set by configuration, not probed
    reason: str = ""
