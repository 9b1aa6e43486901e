"""
Logging helpers.

Every module obtains its logger through get_logger(__name__); the CLI calls
setup_logger once to attach a console handler to the package root logger.
"""

import logging
import sys

DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d - %(message)s"
DEFAULT_DATEFMT = "%H:%M:%S"

ROOT_LOGGER_NAME = "cropaug"


def get_logger(name: str | None = None) -> logging.Logger:
    """
    Get a logger under the package namespace.

    Args:
        name: Module name (usually __name__). Names outside the package are
            nested under the package root logger.

    Returns:
        Logger instance
    """
    if not name:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    level: int = logging.INFO,
    fmt: str = DEFAULT_FORMAT,
    stream=None,
) -> logging.Logger:
    """
    Configure a console logger.

    Calling this more than once replaces the previously installed handler
    instead of stacking duplicates.

    Args:
        name: Logger name
        level: Logging level
        fmt: Log record format (default includes module and line number)
        stream: Output stream (default: stderr)

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if getattr(handler, "_cropaug_handler", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=DEFAULT_DATEFMT))
    handler._cropaug_handler = True
    logger.addHandler(handler)
    logger.propagate = False

    return logger
