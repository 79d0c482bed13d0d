"""Centralized logging configuration for minthresh."""

import logging
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# numpy/scipy RuntimeWarnings are routed here by logging.captureWarnings
WARNINGS_LOGGER = "py.warnings"


def setup_logging(level: str | int = "INFO", log_file: str | None = None) -> None:
    """Configure the minthresh logger with console and optional file output.

    Python warnings (e.g. numerical warnings from numpy or scipy while
    building tables) are captured and written to the same handlers.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            or numeric level.
        log_file: Optional file path for log output. If provided, a FileHandler
            is added alongside the console handler.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger("minthresh")
    logger.setLevel(level)
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT)
    handlers: list[logging.Handler] = []

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    handlers.append(stream_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    for handler in handlers:
        handler.setLevel(level)
        logger.addHandler(handler)

    logging.captureWarnings(True)
    warnings_logger = logging.getLogger(WARNINGS_LOGGER)
    warnings_logger.handlers = list(handlers)
    warnings_logger.propagate = False
