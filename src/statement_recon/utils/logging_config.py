"""Logging setup shared by the CLI and library callers."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
    log_format: Optional[str] = None,
) -> logging.Logger:
    """
    Configure the ``statement_recon`` logger hierarchy.

    Args:
        level: Console logging level
        log_file: Optional path to a rotating log file (always DEBUG)
        log_format: Optional console format string

    Returns:
        The package root logger
    """
    logger = logging.getLogger("statement_recon")
    logger.setLevel(min(level, logging.DEBUG) if log_file else level)

    # Reconfiguring replaces handlers instead of stacking them
    logger.handlers = []

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(log_format or DEFAULT_FORMAT))
    logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a child logger of the package root, e.g. ``statement_recon.cli``."""
    return logging.getLogger(f"statement_recon.{name}")
