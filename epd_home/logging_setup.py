"""Logging setup shared by the CLI and HTTP entry points."""

from __future__ import annotations

import logging

from epd_home.config import LoggingConfig

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(config: LoggingConfig) -> None:
    """Configure the root logger from the ``logging`` config section."""
    level = logging.getLevelName(config.level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {config.level}")
    logging.basicConfig(level=level, format=LOG_FORMAT)


__all__ = ["configure_logging", "LOG_FORMAT"]
