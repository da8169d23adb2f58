"""Logging setup utilities for tsterm.

During a session the console is in raw mode and belongs to the remote
shell, so the ``connect`` command logs to the configured file only.
"""

from __future__ import annotations

import logging
import sys

from tsterm.config.settings import LoggingConfig


def setup_logging(config: LoggingConfig | None = None, console: bool = True) -> None:
    """Configure the 'tsterm' logger.

    Handlers installed by an earlier call are closed and replaced, so
    calling this again only changes the configuration.

    Args:
        config: Logging configuration. If None, uses defaults
                (WARNING level, no file).
        console: Also log to stderr. With neither stderr nor a file,
                 records are discarded instead of reaching logging's
                 last-resort stderr handler.
    """
    if config is None:
        config = LoggingConfig()

    logger = logging.getLogger("tsterm")
    logger.setLevel(getattr(logging, config.level.upper(), logging.WARNING))
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    handlers: list[logging.Handler] = []
    if console:
        handlers.append(logging.StreamHandler(sys.stderr))
    if config.file:
        handlers.append(logging.FileHandler(config.file))

    formatter = logging.Formatter(config.format)
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    if not handlers:
        logger.addHandler(logging.NullHandler())

    logger.info(
        "Logging initialized at %s level (console=%s, file=%s)",
        config.level, console, config.file or "none",
    )
