"""Logging setup and structured event lines"""

import logging


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
ROOT_LOGGER = "univ3_positions"


def setup_logging(level="INFO", log_file=None):
    """
    Configure the package logger.

    Args:
        level: Level name or number
        log_file: Write to this file instead of stderr
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.FileHandler(log_file) if log_file else logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    logger = logging.getLogger(ROOT_LOGGER)
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger


def format_event(event, **details):
    """'event | key=value key=value' with None values dropped"""
    parts = [f"{key}={value}" for key, value in details.items() if value is not None]
    if not parts:
        return event
    return f"{event} | {' '.join(parts)}"


def log_event(logger, event, level=logging.INFO, **details):
    """Write one structured event line"""
    if logger.isEnabledFor(level):
        logger.log(level, format_event(event, **details))
