"""Common logging configuration for the party registration service"""

import logging
import sys
from typing import Optional

from party_registration.config import config

# Libraries that log every request at INFO; the overview poller alone would
# produce one line per refresh.
NOISY_LOGGERS = ("httpx", "httpcore")


class BelowWarningFilter(logging.Filter):
    """Pass only records below WARNING (INFO and DEBUG)"""

    def filter(self, record):
        return record.levelno < logging.WARNING


def setup_logging(level_name: Optional[str] = None):
    """
    Route INFO/DEBUG to stdout and WARNING/ERROR to stderr.

    Args:
        level_name: Overrides ``config["log_level"]`` when given
    """
    level_name = level_name or config.get("log_level", "INFO")
    level = getattr(logging, level_name.upper(), logging.INFO)

    formatter = logging.Formatter("%(levelname)s:%(name)s:%(message)s")

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(logging.DEBUG)
    stdout_handler.addFilter(BelowWarningFilter())
    stdout_handler.setFormatter(formatter)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.WARNING)
    stderr_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Re-running setup (tests, reloads) must not duplicate output
    root_logger.handlers.clear()
    root_logger.addHandler(stdout_handler)
    root_logger.addHandler(stderr_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for the given module name.

    Args:
        name: Usually __name__ from the calling module

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
