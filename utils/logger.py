# This module contains the console log formatter and the logger factory used across the application.
import logging

from config import settings

ROOT_LOGGER_NAME = "bsky_poster"


class CustomFormatter(logging.Formatter):
    """Console formatter that colors each record by its level."""
    grey = "\x1b[37;20m"
    yellow = "\x1b[33;20m"
    red = "\x1b[31;20m"
    bold_red = "\x1b[31;1m"
    dark_grey = "\x1b[30;1m"
    reset = "\x1b[0m"
    format = '[%(levelname)s] %(asctime)s - %(name)s - %(message)s'

    FORMATS = {
        logging.DEBUG: dark_grey + format + reset,
        logging.INFO: grey + format + reset,
        logging.WARNING: yellow + format + reset,
        logging.ERROR: red + format + reset,
        logging.CRITICAL: bold_red + format + reset
    }

    def format(self, record):
        log_fmt = self.FORMATS.get(record.levelno)
        formatter = logging.Formatter(log_fmt)
        return formatter.format(record)


def _configure_root_logger() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        root.setLevel(getattr(logging, settings.LOG_LEVEL, logging.INFO))

        # create console handler
        ch = logging.StreamHandler()
        ch.setLevel(logging.DEBUG)
        ch.setFormatter(CustomFormatter())
        root.addHandler(ch)
    return root


def get_logger(name: str) -> logging.Logger:
    """
    Get an application logger.

    The returned logger is a child of the application's root logger, which
    is given a colored console handler the first time any logger is requested.

    Args:
        name: Usually the calling module's __name__.

    Returns:
        logging.Logger: The configured logger.
    """
    root = _configure_root_logger()
    return root.getChild(name)
