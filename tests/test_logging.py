"""
Tests for logging setup: module loggers and the operator channel.
"""

import logging

import pytest

from driverkit.core.observability.logging_config import UI_LOGGER, setup_logging, ui_level_for


class TestUiLevelFor:
    @pytest.mark.parametrize(
        "module_level,expected",
        [
            (logging.DEBUG, logging.DEBUG),
            (logging.INFO, logging.INFO),
            (logging.WARNING, logging.INFO),
            (logging.ERROR, logging.ERROR),
        ],
    )
    def test_defaults(self, module_level, expected):
        assert ui_level_for(module_level) == expected


class TestSetupLogging:
    def test_operator_channel_shown_at_default_level(self):
        setup_logging(level="WARNING")
        ui = logging.getLogger(UI_LOGGER)
        assert logging.getLogger().level == logging.WARNING
        assert ui.level == logging.INFO
        assert ui.propagate is False
        assert len(ui.handlers) == 1
        assert ui.isEnabledFor(logging.INFO)
        assert not logging.getLogger("driverkit.core.services.resolver").isEnabledFor(logging.INFO)

    def test_quiet(self):
        setup_logging(level="ERROR")
        assert not logging.getLogger(UI_LOGGER).isEnabledFor(logging.WARNING)

    def test_explicit_ui_level(self):
        setup_logging(level="WARNING", ui_level="debug")
        assert logging.getLogger(UI_LOGGER).level == logging.DEBUG

    def test_unknown_level_name(self):
        setup_logging(level="chatty")
        assert logging.getLogger().level == logging.WARNING

    def test_file_receives_both_channels(self, tmp_path):
        log_file = tmp_path / "install.log"
        setup_logging(level="WARNING", log_file=str(log_file), log_file_level="INFO")
        logging.getLogger(UI_LOGGER).info("Installed 3 files.")
        logging.getLogger("driverkit.core.use_cases.install").info("3 of 4 entries placed")

        for handler in logging.getLogger().handlers:
            handler.flush()
        text = log_file.read_text()
        assert "Installed 3 files." in text
        assert "3 of 4 entries placed" in text

        for handler in logging.getLogger().handlers:
            handler.close()
