"""Unit tests for configuration defaults and the logging setup they drive."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import logging
from logging.handlers import RotatingFileHandler
from platecheck.config import Settings
from platecheck.utils import logger as logger_module


class TestDefaults:
    def test_file_logging_is_off_by_default(self, monkeypatch):
        monkeypatch.delenv("LOG_TO_FILE", raising=False)
        assert Settings(_env_file=None).LOG_TO_FILE is False

    def test_file_logging_can_be_enabled_from_env(self, monkeypatch):
        monkeypatch.setenv("LOG_TO_FILE", "true")
        assert Settings(_env_file=None).LOG_TO_FILE is True

    def test_vehicle_and_account_rules(self, monkeypatch):
        for name in ("MIN_VEHICLE_YEAR", "PASSWORD_MIN_LENGTH", "UNKNOWN_OWNER"):
            monkeypatch.delenv(name, raising=False)
        config = Settings(_env_file=None)
        assert config.MIN_VEHICLE_YEAR == 1900
        assert config.PASSWORD_MIN_LENGTH == 6
        assert config.UNKNOWN_OWNER == "Unknown Owner"


class TestLogger:
    def test_no_file_handler_without_log_to_file(self, monkeypatch):
        monkeypatch.setattr(logger_module.settings, "LOG_TO_FILE", False)
        monkeypatch.setattr(logger_module, "_configured", False)
        root = logging.getLogger()
        handlers = list(root.handlers)
        try:
            logger_module.get_logger("platecheck.test")
            added = [h for h in root.handlers if h not in handlers]
            assert added
            assert not any(isinstance(h, RotatingFileHandler) for h in added)
        finally:
            for h in root.handlers[:]:
                if h not in handlers:
                    root.removeHandler(h)
