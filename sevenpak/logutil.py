import logging
import os

_LOG_LEVEL = os.getenv("SEVENPAK_LOG", "WARNING").upper()


def get_logger(name: str) -> logging.Logger:
    """Return a logger with a single stderr handler; level from $SEVENPAK_LOG."""
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger
    level = getattr(logging, _LOG_LEVEL, logging.WARNING)
    logger.setLevel(level)
    handler = logging.StreamHandler()
    handler.setLevel(level)
    formatter = logging.Formatter(
        fmt="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return logger
