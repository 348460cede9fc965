"""
Installation configuration: prefixes, host facts and operator overrides.

Everything the resolver and classifier need from the outside world is
carried here as an explicit value. Environment lookups (XDG data
dirs, tool discovery, SELinux state, distribution) happen once in
``core.services.environment`` and land in this model.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, field_validator

from driverkit.core.models.entry import AbiClass, ArchClass


class Distribution(str, Enum):
    """Distributions with layout conventions that affect destinations."""

    SUSE = "suse"
    UNITED_LINUX = "united_linux"
    GENTOO = "gentoo"
    UBUNTU = "ubuntu"
    DEBIAN = "debian"
    OTHER = "other"


# Relative directories below a prefix for categories that ignore the
# entry's stored path.
OPENGL_HEADER_DST_PATH = "include/GL"
INSTALLER_BINARY_DST_PATH = "bin"
UTILITY_BINARY_DST_PATH = "bin"
DOT_DESKTOP_DST_PATH = "share/applications"
DOCUMENTATION_DST_PATH = "share/doc/NVIDIA_GLX-1.0"


def strip_trailing_slashes(value: str | None) -> str | None:
    """Remove trailing slashes, keeping a lone ``/`` intact."""
    if value is None:
        return None
    stripped = value.rstrip("/")
    return stripped if stripped or not value else "/"


class ToolPaths(BaseModel):
    """External programs used for probing and verification."""

    ldd: str = "ldd"
    chcon: str = "chcon"
    pkg_config: str = "pkg-config"


class ProbePayloads(BaseModel):
    """Pre-built test programs shipped with the package.

    ``tls_test`` is executed with ``tls_test_dso`` as its argument to
    decide the ABI variant; ``rtld_test`` is the binary handed to the
    linker diagnostic tool during verification. A missing path means
    the payload is not available.
    """

    tls_test: str | None = None
    tls_test_dso: str | None = None
    tls_test_32: str | None = None
    tls_test_dso_32: str | None = None
    rtld_test: str | None = None
    rtld_test_32: str | None = None

    def tls_pair(self, arch: ArchClass) -> tuple[str | None, str | None]:
        if arch == ArchClass.COMPAT32:
            return self.tls_test_32, self.tls_test_dso_32
        return self.tls_test, self.tls_test_dso

    def rtld(self, arch: ArchClass) -> str | None:
        return self.rtld_test_32 if arch == ArchClass.COMPAT32 else self.rtld_test


class InstallConfig(BaseModel):
    """Read-only configuration for one installation run."""

    # ── Prefixes ────────────────────────────────────────────────
    opengl_prefix: str = "/usr"
    xfree86_prefix: str = "/usr"
    x_module_path: str | None = None
    installer_prefix: str = "/usr"
    utility_prefix: str = "/usr"
    compat32_prefix: str | None = None     # compatibility root for 32-bit files
    kernel_module_installation_path: str = ""

    # ── Host facts ──────────────────────────────────────────────
    distribution: Distribution = Distribution.OTHER
    host_is_64bit: bool = True
    xdg_data_dirs: str | None = None
    selinux_enabled: bool = False
    selinux_chcon_type: str = "shlib_t"
    tools: ToolPaths = Field(default_factory=ToolPaths)
    tmpdir: str | None = None

    # ── Operator choices ────────────────────────────────────────
    forced_abi: AbiClass | None = None
    forced_abi_compat32: AbiClass | None = None
    opengl_headers: bool = False
    install_compat32: bool = True
    kernel_module_only: bool = False

    payloads: ProbePayloads = Field(default_factory=ProbePayloads)

    @field_validator(
        "opengl_prefix",
        "xfree86_prefix",
        "x_module_path",
        "installer_prefix",
        "utility_prefix",
        "compat32_prefix",
        "kernel_module_installation_path",
    )
    @classmethod
    def _strip_slashes(cls, value: str | None) -> str | None:
        return strip_trailing_slashes(value)

    def forced_abi_for(self, arch: ArchClass) -> AbiClass | None:
        return self.forced_abi_compat32 if arch == ArchClass.COMPAT32 else self.forced_abi

    @property
    def first_xdg_data_dir(self) -> str | None:
        """First entry of the XDG data-directories list, if any."""
        if not self.xdg_data_dirs:
            return None
        first = self.xdg_data_dirs.split(":", 1)[0]
        return first or None

    @property
    def effective_x_module_path(self) -> str:
        """Configured X module directory, else the conventional default.

        64-bit hosts use ``lib64/modules`` except on Debian and Ubuntu,
        which keep 64-bit libraries in ``lib/``.
        """
        if self.x_module_path:
            return self.x_module_path
        if self.host_is_64bit and self.distribution not in (
            Distribution.DEBIAN, Distribution.UBUNTU,
        ):
            return f"{self.xfree86_prefix}/lib64/modules"
        return f"{self.xfree86_prefix}/lib/modules"
