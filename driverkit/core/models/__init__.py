"""
Domain models: pydantic types for driver package installation.

All models are re-exported here for convenient access:

    from driverkit.core.models import Entry, Package, InstallConfig
"""

from driverkit.core.models.config import (
    Distribution,
    InstallConfig,
    ProbePayloads,
    ToolPaths,
)
from driverkit.core.models.entry import (
    AbiClass,
    AbiSelection,
    ArchClass,
    Category,
    Entry,
    mode_from_string,
    mode_to_permission_string,
)
from driverkit.core.models.package import Package
from driverkit.core.models.report import Diagnostic, InstallResult, VerificationReport

__all__ = [
    # entry.py
    "AbiClass",
    "AbiSelection",
    "ArchClass",
    "Category",
    # report.py
    "Diagnostic",
    # config.py
    "Distribution",
    "Entry",
    "InstallConfig",
    "InstallResult",
    # package.py
    "Package",
    "ProbePayloads",
    "ToolPaths",
    "VerificationReport",
    "mode_from_string",
    "mode_to_permission_string",
]
