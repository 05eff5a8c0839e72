"""Tests for logging configuration."""

from __future__ import annotations

import logging
from pathlib import Path

from multitty.config.settings import LoggingConfig
from multitty.utils.logging import setup_logging


class TestSetupLogging:
    def teardown_method(self) -> None:
        logger = logging.getLogger("multitty")
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

    def test_console_handler(self) -> None:
        setup_logging(LoggingConfig(level="debug"))
        logger = logging.getLogger("multitty")
        assert logger.level == logging.DEBUG
        assert [type(h) for h in logger.handlers] == [logging.StreamHandler]

    def test_quiet_console_falls_back_to_null_handler(self) -> None:
        setup_logging(console=False)
        assert [type(h) for h in logging.getLogger("multitty").handlers] == [logging.NullHandler]

    def test_file_handler(self, tmp_path: Path) -> None:
        log_file = tmp_path / "multitty.log"
        setup_logging(LoggingConfig(file=str(log_file)), console=False)
        logging.getLogger("multitty.test").info("hello")
        for handler in logging.getLogger("multitty").handlers:
            handler.flush()
        assert "hello" in log_file.read_text()

    def test_repeated_setup_does_not_stack_handlers(self) -> None:
        setup_logging()
        setup_logging()
        assert len(logging.getLogger("multitty").handlers) == 1
