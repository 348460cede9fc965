"""
Tests for domain models: entries, package, configuration, reports.
"""

import pytest

from driverkit.core.models import (
    AbiClass,
    ArchClass,
    Category,
    Entry,
    InstallConfig,
    Package,
    VerificationReport,
    mode_from_string,
    mode_to_permission_string,
)
from driverkit.core.models.config import Distribution


class TestEntry:
    def test_name_derived_from_source(self):
        e = Entry(source_path="/pkg/usr/lib/libGL.so.1.0.9631")
        assert e.name == "libGL.so.1.0.9631"

    def test_explicit_name_kept(self):
        e = Entry(source_path="/tmp/template-abc123", name="libGL.la")
        assert e.name == "libGL.la"

    def test_no_category_means_no_destination(self):
        e = Entry(source_path="/pkg/a", destination_path="/usr/lib/a")
        assert e.category is None
        assert e.destination_path is None

    def test_exclude_clears_both(self):
        e = Entry(
            source_path="/pkg/libGL.so.1",
            category=Category.OPENGL_LIB,
            destination_path="/usr/lib/libGL.so.1",
        )
        e.exclude()
        assert e.is_excluded
        assert e.destination_path is None

    def test_symlink_categories(self):
        assert Entry(source_path="a", category=Category.OPENGL_SYMLINK).is_symlink
        assert Entry(source_path="a", category=Category.TLS_SYMLINK).is_symlink
        assert not Entry(source_path="a", category=Category.OPENGL_LIB).is_symlink

    def test_derive_carries_classification(self):
        e = Entry(
            source_path="/pkg/libGL.la",
            relative_path="lib32",
            category=Category.LIBGL_LA,
            arch=ArchClass.COMPAT32,
            abi=AbiClass.NEW_TLS,
            mode=0o644,
        )
        d = e.derive("/tmp/template-xyz", Category.LIBGL_LA)
        assert d.source_path == "/tmp/template-xyz"
        assert d.name == "libGL.la"
        assert d.relative_path == "lib32"
        assert d.arch == ArchClass.COMPAT32
        assert d.abi == AbiClass.NEW_TLS
        assert d.generated is True
        assert e.generated is False


class TestModeHelpers:
    def test_parse_octal(self):
        assert mode_from_string("0755") == 0o755
        assert mode_from_string("644") == 0o644

    @pytest.mark.parametrize("bad", ["", "rwx", "0999", "77777"])
    def test_parse_rejects_garbage(self, bad):
        with pytest.raises(ValueError):
            mode_from_string(bad)

    def test_permission_string(self):
        assert mode_to_permission_string(0o755) == "rwxr-xr-x"
        assert mode_to_permission_string(0o640) == "rw-r-----"
        assert mode_to_permission_string(0) == "---------"


class TestPackage:
    def test_installable_needs_category_and_destination(self):
        p = Package(entries=[
            Entry(source_path="a", category=Category.OPENGL_LIB, destination_path="/usr/lib/a"),
            Entry(source_path="b", category=Category.OPENGL_LIB),
            Entry(source_path="c"),
        ])
        assert [e.name for e in p.installable()] == ["a"]

    def test_arch_classes_native_first(self):
        p = Package(entries=[
            Entry(source_path="a", category=Category.OPENGL_LIB, arch=ArchClass.COMPAT32),
            Entry(source_path="b", category=Category.OPENGL_LIB),
            Entry(source_path="c", arch=ArchClass.COMPAT32),
        ])
        assert p.arch_classes() == [ArchClass.NATIVE, ArchClass.COMPAT32]

    def test_arch_classes_ignores_excluded(self):
        p = Package(entries=[Entry(source_path="c", arch=ArchClass.COMPAT32)])
        assert p.arch_classes() == []


class TestInstallConfig:
    def test_trailing_slashes_stripped(self):
        c = InstallConfig(opengl_prefix="/usr/", compat32_prefix="/emul/ia32-linux//")
        assert c.opengl_prefix == "/usr"
        assert c.compat32_prefix == "/emul/ia32-linux"

    def test_root_prefix_kept(self):
        assert InstallConfig(opengl_prefix="/").opengl_prefix == "/"

    def test_first_xdg_data_dir(self):
        c = InstallConfig(xdg_data_dirs="/usr/local/share:/usr/share")
        assert c.first_xdg_data_dir == "/usr/local/share"
        assert InstallConfig().first_xdg_data_dir is None
        assert InstallConfig(xdg_data_dirs=":/usr/share").first_xdg_data_dir is None

    def test_forced_abi_per_arch(self):
        c = InstallConfig(forced_abi=AbiClass.NEW_TLS, forced_abi_compat32=AbiClass.CLASSIC_TLS)
        assert c.forced_abi_for(ArchClass.NATIVE) == AbiClass.NEW_TLS
        assert c.forced_abi_for(ArchClass.COMPAT32) == AbiClass.CLASSIC_TLS

    def test_x_module_path_fallback(self):
        assert InstallConfig(xfree86_prefix="/usr/X11R6").effective_x_module_path == (
            "/usr/X11R6/lib64/modules"
        )
        debian = InstallConfig(xfree86_prefix="/usr/X11R6", distribution=Distribution.DEBIAN)
        assert debian.effective_x_module_path == "/usr/X11R6/lib/modules"
        x86 = InstallConfig(xfree86_prefix="/usr/X11R6", host_is_64bit=False)
        assert x86.effective_x_module_path == "/usr/X11R6/lib/modules"


class TestVerificationReport:
    def test_passed_requires_both(self):
        r = VerificationReport()
        assert r.passed
        r.files_ok = False
        assert not r.passed

    def test_to_dict(self):
        r = VerificationReport()
        r.warn("something odd", path="/x")
        d = r.to_dict()
        assert d["passed"] is True
        assert d["diagnostics"][0]["path"] == "/x"
