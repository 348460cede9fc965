"""
Template expansion for libtool archives and desktop entries.

Some package files carry placeholder tokens that depend on the
installation prefixes. Each such template entry is rendered into a
temporary file; the template itself is excluded and a new entry
pointing at the rendered file is appended. The new entry keeps the
template's architecture/ABI class, mode, name and stored path.

The input collection is not appended to while it is walked; the
function returns a new list (existing entries first, rendered
entries after them).
"""

from __future__ import annotations

import logging

from driverkit import __version__
from driverkit.core.models.config import (
    DOCUMENTATION_DST_PATH,
    UTILITY_BINARY_DST_PATH,
    InstallConfig,
)
from driverkit.core.models.entry import TEMPLATE_CATEGORIES, Category, Entry
from driverkit.core.services.installer import remove_temp_file, render_template
from driverkit.core.services.reporter import Reporter

logger = logging.getLogger(__name__)

PROGRAM_NAME = "driverkit"


def libgl_la_replacements(entry: Entry, config: InstallConfig) -> list[tuple[str, str]]:
    path = entry.relative_path or ""
    libgl_path = f"{config.opengl_prefix}/{path}" if path else config.opengl_prefix
    return [
        ("__LIBGL_PATH__", libgl_path),
        ("__GENERATED_BY__", f"{PROGRAM_NAME}: {__version__}"),
    ]


def dot_desktop_replacements(entry: Entry, config: InstallConfig) -> list[tuple[str, str]]:
    return [
        ("__UTILS_PATH__", f"{config.utility_prefix}/{UTILITY_BINARY_DST_PATH}"),
        ("__DOCS_PATH__", f"{config.opengl_prefix}/{DOCUMENTATION_DST_PATH}"),
    ]


_REPLACEMENTS = {
    Category.LIBGL_LA: libgl_la_replacements,
    Category.DOT_DESKTOP: dot_desktop_replacements,
}


def render_templates(
    entries: list[Entry],
    config: InstallConfig,
    reporter: Reporter,
) -> list[Entry]:
    """Render every template entry and return the extended collection."""
    rendered: list[Entry] = []

    for entry in entries:
        if entry.category not in TEMPLATE_CATEGORIES or entry.generated:
            continue

        category = entry.category
        replacements = _REPLACEMENTS[category](entry, config)
        entry.exclude()

        result = render_template(entry.source_path, replacements, config.tmpdir)
        if not result["ok"]:
            reporter.warn("Unable to process template '%s': %s", entry.source_path, result["error"])
            continue

        rendered.append(entry.derive(result["path"], category))
        logger.debug("rendered %s -> %s", entry.source_path, result["path"])

    return list(entries) + rendered


def cleanup_rendered(entries: list[Entry]) -> None:
    """Remove the temporary files behind rendered entries."""
    for entry in entries:
        if entry.generated:
            remove_temp_file(entry.source_path)
