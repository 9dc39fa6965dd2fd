"""
log.py: Logging setup for the timeline runner.

Modules log through logging.getLogger(__name__); setup_logging() attaches a
colorized console handler to the package logger once.

Usage:
    from booking_timeline.log import setup_logging
    setup_logging()
"""

import logging
import os
import sys

from colorlog import ColoredFormatter

LOGGER_NAME = "booking_timeline"
LEVEL_ENV = "BOOKING_TIMELINE_LOG_LEVEL"


def setup_logging(level: str = None) -> logging.Logger:
    level = (level or os.getenv(LEVEL_ENV, "INFO")).upper()

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Make sure we don't add multiple handlers
    if getattr(logger, "_initialized", False):
        return logger

    console_formatter = ColoredFormatter(
        "%(log_color)s[%(asctime)s] %(levelname)s in %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        log_colors={
            "DEBUG": "cyan",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "bold_red",
        }
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    logger._initialized = True
    return logger
