#!/usr/bin/env python3
"""
Tests for logging setup
"""

import logging

import pytest

from htakiosk.src.core.logger import setup_logging, parse_log_level, get_logger, TRACE


class TestParseLogLevel:

    @pytest.mark.parametrize("name, level", [
        ("NONE", logging.CRITICAL + 10),
        ("error", logging.ERROR),
        ("WARN", logging.WARNING),
        ("Warning", logging.WARNING),
        ("INFO", logging.INFO),
        ("DEBUG", logging.DEBUG),
        ("TRACE", TRACE),
    ])
    def test_known_levels(self, name, level):
        assert parse_log_level(name) == level

    def test_unknown_level(self):
        with pytest.raises(ValueError):
            parse_log_level("LOUD")


class TestSetupLogging:

    def test_none_silences_everything(self, restore_logging, capsys):
        setup_logging("NONE")

        get_logger("htakiosk.test").error("should not appear")

        captured = capsys.readouterr()
        assert "should not appear" not in captured.out + captured.err

    def test_errors_go_to_stderr(self, restore_logging, capsys):
        setup_logging("INFO")
        logger = get_logger("htakiosk.test")

        logger.info("plain info")
        logger.error("broken lock")

        captured = capsys.readouterr()
        assert "plain info" in captured.out
        assert "broken lock" in captured.err
        assert "broken lock" not in captured.out

    def test_log_file(self, restore_logging, tmp_path):
        log_file = tmp_path / "logs" / "kiosk.log"
        setup_logging("TRACE", str(log_file))

        get_logger("htakiosk.test").log(TRACE, "probing -> winner")
        for handler in logging.getLogger().handlers:
            handler.flush()

        content = log_file.read_text()
        assert "probing -> winner" in content
        assert "TRACE" in content
