"""
Tests for the process-execution collaborator.
"""

from driverkit.core.services.process import (
    SPAWN_FAILURE_STATUS,
    collapse_multiple_slashes,
    field,
    run_command,
)


class TestRunCommand:
    def test_success_strips_trailing_newline(self):
        result = run_command(["echo", "hello"])
        assert result == {"ok": True, "status": 0, "output": "hello"}

    def test_nonzero_exit(self):
        result = run_command(["false"])
        assert not result["ok"]
        assert result["status"] == 1
        assert "exit 1" in result["error"]

    def test_stderr_folded_in(self):
        result = run_command(["sh", "-c", "echo oops >&2"])
        assert result["output"] == "oops"

    def test_stderr_discarded(self):
        result = run_command(["sh", "-c", "echo oops >&2"], redirect_stderr=False)
        assert result["output"] == ""

    def test_missing_binary(self):
        result = run_command(["/nonexistent/driverkit-missing-tool"])
        assert not result["ok"]
        assert result["status"] == SPAWN_FAILURE_STATUS
        assert "Failure executing command" in result["error"]


class TestHelpers:
    def test_field(self):
        line = "\tlibGL.so.1 => /usr/lib/libGL.so.1 (0x00007f00)"
        assert field(line, 1) == "libGL.so.1"
        assert field(line, 3) == "/usr/lib/libGL.so.1"
        assert field(line, 9) == ""
        assert field(line, 0) == ""

    def test_collapse(self):
        assert collapse_multiple_slashes("//usr///lib//x") == "/usr/lib/x"
        assert collapse_multiple_slashes("a/b") == "a/b"
