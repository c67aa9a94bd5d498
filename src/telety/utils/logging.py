"""Logging setup utilities for telety.

Configures logging for the whole application based on the logging
configuration settings. The interactive prompt shares the terminal with
the log output, so the default level is WARNING.
"""

from __future__ import annotations

import logging
import sys

from telety.config.settings import LoggingConfig


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Configure logging for the telety application.

    Sets up the 'telety' logger with the specified level, format, and
    optional file handler. When a file is configured, records go only to
    the file so they never interleave with prompt output.

    Args:
        config: Logging configuration. If None, uses defaults
                (WARNING level, stderr output).
    """
    if config is None:
        config = LoggingConfig()

    root_logger = logging.getLogger("telety")
    root_logger.setLevel(getattr(logging, config.level.upper(), logging.WARNING))

    formatter = logging.Formatter(config.format)

    if config.file:
        handler: logging.Handler = logging.FileHandler(config.file)
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    root_logger.info("Logging initialized at %s level", config.level)
