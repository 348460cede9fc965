"""
Result models: diagnostics, verification report and run result.

Components report outcomes through these models instead of raising.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class Diagnostic(BaseModel):
    """A single human-readable finding."""

    level: Literal["info", "warning", "error"] = "warning"
    message: str
    path: str | None = None


class VerificationReport(BaseModel):
    """Outcome of the post-install verifier.

    ``files_ok`` covers the existence/identity pass (advisory only),
    ``linkage_ok`` covers the runtime linkage check. ``passed`` is the
    conjunction of both.
    """

    files_ok: bool = True
    linkage_ok: bool = True
    checked: int = 0
    diagnostics: list[Diagnostic] = Field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.files_ok and self.linkage_ok

    def warn(self, message: str, path: str | None = None) -> None:
        self.diagnostics.append(Diagnostic(level="warning", message=message, path=path))

    def fail(self, message: str, path: str | None = None) -> None:
        self.diagnostics.append(Diagnostic(level="error", message=message, path=path))

    def to_dict(self) -> dict[str, Any]:
        return {
            "passed": self.passed,
            "files_ok": self.files_ok,
            "linkage_ok": self.linkage_ok,
            "checked": self.checked,
            "diagnostics": [d.model_dump() for d in self.diagnostics],
        }


class InstallResult(BaseModel):
    """Outcome of a full installation run."""

    ok: bool = True
    error: str | None = None
    selected_abi: dict[str, str] = Field(default_factory=dict)
    installed: list[str] = Field(default_factory=list)
    verification: VerificationReport | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "error": self.error,
            "selected_abi": dict(self.selected_abi),
            "installed": list(self.installed),
            "verification": self.verification.to_dict() if self.verification else None,
        }
