"""Logging setup for the application."""

import logging
import sys
from pathlib import Path
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logger(
    log_level: str = "INFO",
    name: str = "pr_comment_radar",
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Set up and configure application logger.

    Logs go to stdout in a simple, readable format. When ``log_file`` is
    given, the same records are also appended to that file, which is how the
    long-running ``watch`` process keeps a history of scheduled refreshes.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        name: Logger name (default: pr_comment_radar)
        log_file: Optional path of a file to append log records to

    Returns:
        logging.Logger: Configured logger instance
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    # Configure root logger so library modules using getLogger(__name__) inherit it
    logging.basicConfig(
        level=numeric_level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=handlers,
        force=True,  # Override any existing configuration
    )

    logger = logging.getLogger(name)
    logger.setLevel(numeric_level)

    return logger
