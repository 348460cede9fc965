"""
Tests for package-level filters.
"""

from driverkit.core.models import ArchClass, Category, Entry, Package
from driverkit.core.services.package_ops import (
    add_kernel_module,
    exclude_compat32,
    exclude_headers,
    keep_only_kernel_module,
)


def _package():
    return Package(entries=[
        Entry(source_path="/pkg/libGL.so.1", category=Category.OPENGL_LIB),
        Entry(source_path="/pkg/32/libGL.so.1", category=Category.OPENGL_LIB,
              arch=ArchClass.COMPAT32),
        Entry(source_path="/pkg/nv-kernel.o", category=Category.KERNEL_MODULE_CMD),
    ])


class TestExcludeCompat32:
    def test_opt_out(self, config, reporter):
        cfg = config.model_copy(update={"install_compat32": False})
        package = _package()
        assert exclude_compat32(package, cfg, reporter) == 1
        assert package.entries[1].is_excluded
        assert not package.entries[0].is_excluded

    def test_kept_by_default(self, config, reporter):
        package = _package()
        assert exclude_compat32(package, config, reporter) == 0
        assert not package.entries[1].is_excluded

    def test_missing_compat_root_warns(self, config, reporter, tmp_path):
        cfg = config.model_copy(update={"compat32_prefix": str(tmp_path / "emul")})
        exclude_compat32(_package(), cfg, reporter)
        assert any("does not exist" in w for w in reporter.warnings)


class TestKernelModule:
    def test_add(self, config):
        package = Package()
        entry = add_kernel_module(package, "/build/kernel", "nvidia.ko", config)
        assert package.entries == [entry]
        assert entry.source_path == "/build/kernel/nvidia.ko"
        assert entry.destination_path == f"{config.kernel_module_installation_path}/nvidia.ko"
        assert entry.mode == 0o644

    def test_keep_only(self, config):
        package = _package()
        add_kernel_module(package, "/build", "nvidia.ko", config)
        excluded = keep_only_kernel_module(package)
        assert excluded == 2
        kept = [e.category for e in package.entries if not e.is_excluded]
        assert kept == [Category.KERNEL_MODULE_CMD, Category.KERNEL_MODULE]


class TestExcludeHeaders:
    def _package(self):
        return Package(entries=[
            Entry(source_path="/pkg/gl.h", category=Category.OPENGL_HEADER,
                  destination_path="/usr/include/GL/gl.h"),
            Entry(source_path="/pkg/libGL.so.1", category=Category.OPENGL_LIB),
        ])

    def test_excluded_by_default(self, config):
        package = self._package()
        assert exclude_headers(package, config) == 1
        assert package.entries[0].is_excluded
        assert package.entries[0].destination_path is None
        assert not package.entries[1].is_excluded

    def test_kept_when_enabled(self, config):
        package = self._package()
        cfg = config.model_copy(update={"opengl_headers": True})
        assert exclude_headers(package, cfg) == 0
        assert not package.entries[0].is_excluded
