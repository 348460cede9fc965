"""
Package model: driver package metadata plus its entry collection.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from driverkit.core.models.entry import ArchClass, Entry


class Package(BaseModel):
    """A driver package as produced by the packaging stage."""

    name: str = "driver"
    description: str = "NVIDIA Accelerated Graphics Driver"
    version: str = ""
    kernel_module_build_directory: str | None = None
    kernel_module_filename: str | None = None
    entries: list[Entry] = Field(default_factory=list)

    def installable(self) -> list[Entry]:
        """Entries that currently have a category and a destination."""
        return [
            e for e in self.entries
            if e.category is not None and e.destination_path
        ]

    def arch_classes(self) -> list[ArchClass]:
        """Architecture classes present among non-excluded entries, native first."""
        present = {e.arch for e in self.entries if e.category is not None}
        return [a for a in (ArchClass.NATIVE, ArchClass.COMPAT32) if a in present]
