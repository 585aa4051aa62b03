"""Logging setup for the changelog generator."""

import logging
import os
import sys
from typing import Optional

APP_LOGGER_NAME = "changelog"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> logging.Logger:
    """Set up the application-level logger.

    All modules log through children of the ``changelog`` logger, so this
    configures every one of them.

    Args:
        verbose: Log at DEBUG instead of INFO
        log_file: Optional file to mirror log output to

    Returns:
        The configured ``changelog`` logger
    """
    level = logging.DEBUG if verbose else logging.INFO

    app_logger = logging.getLogger(APP_LOGGER_NAME)
    app_logger.setLevel(level)
    app_logger.propagate = False

    # Close and clear existing handlers
    for handler in app_logger.handlers:
        handler.close()
    app_logger.handlers = []

    formatter = logging.Formatter(LOG_FORMAT)

    # stdout may carry a --dry-run document, so logs go to stderr
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    app_logger.addHandler(console_handler)

    if log_file:
        log_dir = os.path.dirname(os.path.abspath(log_file))
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        app_logger.addHandler(file_handler)

    return app_logger
