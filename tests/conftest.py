"""
Shared test fixtures and configuration.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable

import pytest

from driverkit.core.models.config import Distribution, InstallConfig
from driverkit.core.observability.logging_config import UI_LOGGER
from driverkit.core.services.reporter import Reporter


class FakeRunner:
    """Stands in for ``process.run_command``; records every command.

    ``handler`` receives the command list and returns a result dict;
    without one every command succeeds with empty output.
    """

    def __init__(self, handler: Callable[[list[str]], dict[str, Any]] | None = None):
        self.handler = handler
        self.calls: list[list[str]] = []

    def __call__(self, cmd: list[str], **kwargs: Any) -> dict[str, Any]:
        self.calls.append(list(cmd))
        if self.handler is not None:
            return self.handler(list(cmd))
        return {"ok": True, "status": 0, "output": ""}


@pytest.fixture
def runner_factory():
    """Build a FakeRunner: ``runner_factory(handler)``."""
    return FakeRunner


@pytest.fixture
def reporter() -> Reporter:
    return Reporter()


@pytest.fixture
def tmp_root(tmp_path: Path) -> Path:
    """Return a temporary directory standing in for ``/``."""
    root = tmp_path / "root"
    root.mkdir()
    return root


@pytest.fixture
def config(tmp_path: Path, tmp_root: Path) -> InstallConfig:
    """A fully explicit configuration rooted under tmp_path."""
    scratch = tmp_path / "scratch"
    scratch.mkdir()
    return InstallConfig(
        opengl_prefix=str(tmp_root / "usr"),
        xfree86_prefix=str(tmp_root / "usr"),
        x_module_path=str(tmp_root / "usr/lib/xorg/modules"),
        installer_prefix=str(tmp_root / "usr"),
        utility_prefix=str(tmp_root / "usr"),
        kernel_module_installation_path=str(tmp_root / "lib/modules/extra"),
        distribution=Distribution.OTHER,
        host_is_64bit=True,
        tmpdir=str(scratch),
    )


@pytest.fixture
def payload_dir(tmp_path: Path) -> Path:
    """Directory holding stand-in probe payloads."""
    d = tmp_path / "payloads"
    d.mkdir()
    for name in ("tls_test", "tls_test_dso", "tls_test_32", "tls_test_dso_32", "rtld_test", "rtld_test_32"):
        (d / name).write_bytes(b"\x7fELF" + name.encode())
    return d


@pytest.fixture(autouse=True)
def _restore_logging():
    """Undo ``setup_logging`` calls made by a test (CLI runs configure logging)."""
    saved = []
    for name in (None, UI_LOGGER):
        lg = logging.getLogger(name)
        saved.append((lg, list(lg.handlers), lg.level, lg.propagate))
    yield
    for lg, handlers, level, propagate in saved:
        lg.handlers[:] = handlers
        lg.setLevel(level)
        lg.propagate = propagate
