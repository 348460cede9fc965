"""
UI collaborator: the narrow surface components use to talk to the operator.

The installer core only ever logs, warns, reports errors and
advances a progress indicator. ``Reporter`` sends all of it to the
``driverkit.ui`` logger and keeps warnings/errors as diagnostics so
the top-level flow can print a summary.
"""

from __future__ import annotations

import logging

from driverkit.core.models.report import Diagnostic
from driverkit.core.observability.logging_config import UI_LOGGER

logger = logging.getLogger(UI_LOGGER)


class Reporter:
    """Default UI collaborator backed by ``logging``."""

    def __init__(self) -> None:
        self.diagnostics: list[Diagnostic] = []
        self.progress: tuple[float, str] = (0.0, "")

    def log(self, message: str, *args: object) -> None:
        logger.info(message, *args)

    def warn(self, message: str, *args: object) -> None:
        text = message % args if args else message
        self.diagnostics.append(Diagnostic(level="warning", message=text))
        logger.warning("WARNING: %s", text)

    def error(self, message: str, *args: object) -> None:
        text = message % args if args else message
        self.diagnostics.append(Diagnostic(level="error", message=text))
        logger.error("ERROR: %s", text)

    def report_progress(self, fraction: float, label: str = "") -> None:
        fraction = min(max(fraction, 0.0), 1.0)
        self.progress = (fraction, label)
        logger.debug("[%3d%%] %s", int(fraction * 100), label)

    @property
    def warnings(self) -> list[str]:
        return [d.message for d in self.diagnostics if d.level == "warning"]

    @property
    def errors(self) -> list[str]:
        return [d.message for d in self.diagnostics if d.level == "error"]
