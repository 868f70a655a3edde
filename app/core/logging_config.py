"""
Logging setup.

Installs a single console handler on the `app` logger so every module that
does `logging.getLogger(__name__)` inherits the same format and level.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """
    Configure the application logger.

    Calling this more than once only updates the level; handlers are not
    duplicated.

    Args:
        level (str): Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).

    Returns:
        logging.Logger: The configured `app` logger.
    """

    logger = logging.getLogger("app")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False

    return logger
