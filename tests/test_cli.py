"""
Tests for CLI commands: global options, plan, install, verify.
"""

import json
import os
import textwrap
from pathlib import Path

from click.testing import CliRunner

from driverkit.main import cli


def _make_project(tmp_path: Path) -> tuple[Path, Path]:
    """Create a package tree, driverkit.yml and manifest.yml."""
    (tmp_path / "pkg" / "usr" / "lib").mkdir(parents=True)
    (tmp_path / "pkg" / "usr" / "lib" / "libGLcore.so.1.0").write_bytes(b"\x7fELF core")
    (tmp_path / "scratch").mkdir()
    root = tmp_path / "root"

    config = tmp_path / "driverkit.yml"
    config.write_text(textwrap.dedent(f"""\
        opengl_prefix: {root}/usr
        installer_prefix: {root}/usr
        utility_prefix: {root}/usr
        tmpdir: {tmp_path}/scratch
        distribution: other
        host_is_64bit: true
    """))

    manifest = tmp_path / "manifest.yml"
    manifest.write_text(textwrap.dedent("""\
        name: test-driver
        version: "1.0"
        entries:
          - source: pkg/usr/lib/libGLcore.so.1.0
            path: lib
            category: opengl_lib
            mode: "0755"
          - source: pkg/usr/lib/libGLcore.so.1
            path: lib
            category: opengl_symlink
            target: libGLcore.so.1.0
    """))
    return config, manifest


class TestCLIGlobal:
    def test_help(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "driverkit" in result.output

    def test_version(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_missing_config(self, tmp_path: Path):
        runner = CliRunner()
        result = runner.invoke(
            cli, ["-c", str(tmp_path / "nope.yml"), "plan", str(tmp_path / "m.yml")],
        )
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_missing_manifest(self, tmp_path: Path):
        config, _ = _make_project(tmp_path)
        runner = CliRunner()
        result = runner.invoke(cli, ["-c", str(config), "plan", str(tmp_path / "absent.yml")])
        assert result.exit_code == 1
        assert "Manifest not found" in result.output


class TestPlanCommand:
    def test_plan_json(self, tmp_path: Path):
        config, manifest = _make_project(tmp_path)
        runner = CliRunner()
        result = runner.invoke(
            cli, ["-q", "-c", str(config), "--no-detect", "plan", str(manifest), "--json"],
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["ok"] is True
        assert data["selected_abi"] == {"native": "classic_tls"}
        assert f"{tmp_path}/root/usr/lib/libGLcore.so.1.0" in data["installed"]
        assert not (tmp_path / "root").exists()

    def test_plan_text(self, tmp_path: Path):
        config, manifest = _make_project(tmp_path)
        runner = CliRunner()
        result = runner.invoke(cli, ["-c", str(config), "--no-detect", "plan", str(manifest)])
        assert result.exit_code == 0
        assert "test-driver 1.0" in result.output
        assert "libGLcore.so.1" in result.output


class TestInstallCommand:
    def test_install_skip_verify(self, tmp_path: Path):
        config, manifest = _make_project(tmp_path)
        runner = CliRunner()
        result = runner.invoke(
            cli,
            ["-q", "-c", str(config), "--no-detect", "install", str(manifest),
             "--skip-verify", "--json"],
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert len(data["installed"]) == 2
        lib = tmp_path / "root" / "usr" / "lib"
        assert (lib / "libGLcore.so.1.0").read_bytes() == b"\x7fELF core"
        assert os.readlink(lib / "libGLcore.so.1") == "libGLcore.so.1.0"

    def test_verify_before_install_fails(self, tmp_path: Path):
        config, manifest = _make_project(tmp_path)
        runner = CliRunner()
        result = runner.invoke(
            cli, ["-q", "-c", str(config), "--no-detect", "verify", str(manifest)],
        )
        assert result.exit_code == 1
