"""
Logging for the extraction runs.

Progress messages go to stderr so the summaries printed by the scripts stay
alone on stdout. A log file, when requested, gets the full record origin.
"""
import logging
import sys
from typing import Optional

PACKAGE_LOGGER = "tkextract"
CONSOLE_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
FILE_FORMAT = "%(asctime)s %(name)s:%(lineno)d [%(levelname)s] %(message)s"

# plotting back-ends that are chatty at DEBUG level
NOISY_LOGGERS = ("matplotlib", "PIL")


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """
    Attach console and optional file handlers to the ``tkextract`` logger.

    Calling it again replaces the handlers of the previous call.

    Args:
        level: Threshold for the package logger and its handlers
        log_file: Path of a log file, truncated on every call

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt="%H:%M:%S"))
    logger.addHandler(console)

    if log_file:
        to_file = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        to_file.setLevel(level)
        to_file.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(to_file)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    logger.debug("Logging to %s", log_file or "console only")
    return logger
