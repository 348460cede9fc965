"""
Manifest loader: reads a package manifest into a ``Package``.

The manifest is what the packaging stage hands over: package metadata
and one record per extracted file. Relative ``source`` paths are
resolved against the manifest's directory.

    name: NVIDIA-Linux-x86_64
    version: "96.43.23"
    entries:
      - source: usr/lib/libGL.so.96.43.23
        path: lib
        category: opengl_lib
        abi: classic_tls
        mode: "0755"
      - source: usr/lib/libGL.so.1
        path: lib
        category: opengl_symlink
        target: libGL.so.96.43.23
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from driverkit.core.models.entry import SYMLINK_CATEGORIES, Entry, mode_from_string
from driverkit.core.models.package import Package

logger = logging.getLogger(__name__)


class ManifestError(Exception):
    """Raised when a package manifest is missing or malformed."""


_SYMLINK_CATEGORY_NAMES = frozenset(c.value for c in SYMLINK_CATEGORIES)


def _entry_fields(raw: dict[str, Any], base: Path, index: int) -> dict[str, Any]:
    if "source" not in raw:
        raise ManifestError(f"Entry #{index} has no 'source'")
    if raw.get("category") in _SYMLINK_CATEGORY_NAMES and not raw.get("target"):
        raise ManifestError(
            f"Entry #{index} ({raw['source']}) is a symbolic link but has no 'target'"
        )

    source = Path(str(raw["source"]))
    if not source.is_absolute():
        source = base / source

    fields: dict[str, Any] = {
        "source_path": str(source),
        "relative_path": raw.get("path"),
        "symlink_target": raw.get("target"),
        "category": raw.get("category"),
        "arch": raw.get("arch", "native"),
        "abi": raw.get("abi"),
        "checksum": raw.get("checksum"),
    }
    if raw.get("name"):
        fields["name"] = raw["name"]

    mode = raw.get("mode")
    if isinstance(mode, str):
        try:
            fields["mode"] = mode_from_string(mode)
        except ValueError as e:
            raise ManifestError(f"Error parsing permission string '{mode}' ({e})") from e
    elif isinstance(mode, int):
        fields["mode"] = mode
    return fields


def load_manifest(path: Path) -> Package:
    """Load a package manifest.

    Raises:
        ManifestError: If the file is missing or invalid.
    """
    if not path.is_file():
        raise ManifestError(f"Manifest not found: {path}")

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ManifestError(f"Cannot read manifest {path}: {e}") from e

    if not isinstance(data, dict):
        raise ManifestError(f"Expected a YAML mapping in {path}")

    base = path.parent.resolve()
    raw_entries = data.get("entries") or []
    if not isinstance(raw_entries, list):
        raise ManifestError(f"'entries' must be a list in {path}")

    try:
        entries = [
            Entry(**_entry_fields(raw, base, i))
            for i, raw in enumerate(raw_entries)
            if isinstance(raw, dict)
        ]
    except ValidationError as e:
        raise ManifestError(f"Invalid entry in {path}: {e}") from e

    kernel = data.get("kernel_module") or {}
    if not isinstance(kernel, dict):
        raise ManifestError(f"'kernel_module' must be a mapping in {path}")
    build_dir = kernel.get("build_directory")
    if build_dir and not Path(build_dir).is_absolute():
        build_dir = str(base / build_dir)

    package = Package(
        name=str(data.get("name", "driver")),
        description=str(data.get("description", Package.model_fields["description"].default)),
        version=str(data.get("version", "")),
        kernel_module_build_directory=build_dir,
        kernel_module_filename=kernel.get("filename"),
        entries=entries,
    )
    logger.info("Loaded manifest '%s' with %d entries", package.name, len(package.entries))
    return package
