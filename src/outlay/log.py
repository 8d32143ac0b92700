"""Logging setup for the Outlay command-line tool."""

import logging
import sys

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(verbose: int = 0) -> logging.Logger:
    """Configure the 'outlay' logger for console output.

    Args:
        verbose: 0 shows warnings only, 1 adds info messages, 2+ adds debug.

    Returns:
        The configured package logger.
    """
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    logger = logging.getLogger('outlay')
    logger.setLevel(level)

    # Replace handlers so repeated calls do not duplicate output
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)

    return logger
