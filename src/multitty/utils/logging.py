"""Logging setup utilities for multitty.

Configures logging for the whole application from the logging
configuration section.
"""

from __future__ import annotations

import logging
import sys

from multitty.config.settings import LoggingConfig


def setup_logging(config: LoggingConfig | None = None, console: bool = True) -> None:
    """Configure the ``multitty`` logger.

    Args:
        config: Logging configuration. If None, uses defaults
                (INFO level, stderr output).
        console: Whether to log to stderr. Raw-mode terminal sessions
                 turn this off so log lines do not land in the session.
    """
    if config is None:
        config = LoggingConfig()

    root_logger = logging.getLogger("multitty")
    root_logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(config.format)

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if config.file:
        file_handler = logging.FileHandler(config.file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    if not root_logger.handlers:
        root_logger.addHandler(logging.NullHandler())

    root_logger.info("Logging initialized at %s level", config.level)
