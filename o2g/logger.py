"""Logging configuration for O2G."""

import logging
import sys
from typing import Optional, Union


def setup_logger(
    name: str = "o2g",
    level: Union[str, int] = "INFO",
    format_string: Optional[str] = None,
) -> logging.Logger:
    """Set up and configure logger.

    Args:
        name: Logger name
        level: Logging level, name or number
        format_string: Custom format string

    Returns:
        Configured logger instance
    """
    if format_string is None:
        format_string = "[ %(levelname)-8s ] %(message)s"

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Re-running setup (e.g. --verbose) must not stack handlers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(format_string))
    logger.addHandler(console_handler)

    logger.propagate = False

    return logger


# Global logger instance
logger = setup_logger()
