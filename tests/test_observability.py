"""
Tests for observability — log level resolution and handler setup.
"""

import logging
from pathlib import Path

import pytest

from devswitch.core.observability.logging_config import (
    FILE_ENV,
    FILE_LEVEL_ENV,
    LEVEL_ENV,
    resolve_level,
    setup_logging,
)


@pytest.fixture(autouse=True)
def restore_root_logger(monkeypatch):
    for name in (LEVEL_ENV, FILE_ENV, FILE_LEVEL_ENV):
        monkeypatch.delenv(name, raising=False)
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestResolveLevel:
    def test_flag_precedence(self):
        assert resolve_level(debug=True, verbose=True, quiet=True) == "DEBUG"
        assert resolve_level(verbose=True, quiet=True) == "INFO"
        assert resolve_level(quiet=True) == "ERROR"

    def test_default_warning(self):
        assert resolve_level() == "WARNING"

    def test_env(self, monkeypatch):
        monkeypatch.setenv(LEVEL_ENV, "INFO")
        assert resolve_level() == "INFO"
        assert resolve_level(quiet=True) == "ERROR"


class TestSetupLogging:
    def test_single_console_handler(self):
        setup_logging("INFO")
        setup_logging("INFO")

        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.level == logging.INFO

    def test_unknown_level_falls_back(self):
        setup_logging("LOUD")
        assert logging.getLogger().level == logging.WARNING

    def test_file_handler_with_own_level(self, tmp_path: Path):
        log_file = tmp_path / "devswitch.log"
        setup_logging("WARNING", log_file=str(log_file), log_file_level="DEBUG")

        root = logging.getLogger()
        assert len(root.handlers) == 2
        assert root.level == logging.DEBUG

        logging.getLogger("devswitch.test").debug("scan detail")
        for handler in root.handlers:
            handler.flush()
        assert "scan detail" in log_file.read_text()

    def test_file_from_env(self, tmp_path: Path, monkeypatch):
        log_file = tmp_path / "env.log"
        monkeypatch.setenv(FILE_ENV, str(log_file))

        setup_logging("ERROR")

        assert any(isinstance(h, logging.FileHandler) for h in logging.getLogger().handlers)

    def test_third_party_quieted(self):
        logging.getLogger("concurrent.futures").setLevel(logging.NOTSET)
        setup_logging("INFO")
        assert logging.getLogger("concurrent.futures").level == logging.WARNING
