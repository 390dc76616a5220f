"""
Logging Setup
Configures logging for bench-history commands and library modules.
"""
import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Optional, Union
from datetime import datetime

from bench_history.state_paths import resolve_state_dir

DETAILED_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(filename)s:%(lineno)d | %(message)s"
SIMPLE_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"


def setup_logging(
    name: str,
    log_dir: Optional[Union[str, Path]] = None,
    log_level: str = "INFO",
    console_output: bool = True,
) -> logging.Logger:
    """
    Setup logging for a component.

    Creates a rotating file handler and an optional console handler on the
    named logger. Library modules log through ``logging.getLogger(__name__)``
    under the ``bench_history`` namespace, so configuring that name captures
    all of them.

    Args:
        name: Logger name (e.g. "bench_history")
        log_dir: Directory for log files (defaults to <state_dir>/logs/{name}/)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        console_output: Whether to also log to stderr

    Returns:
        Configured logger instance

    Example:
        >>> logger = setup_logging("bench_history", log_level="DEBUG")
        >>> logger.info("History loaded")
    """
    if log_dir is None:
        log_dir = resolve_state_dir() / "logs" / name.lower()
    else:
        log_dir = os.path.expanduser(str(log_dir))

    os.makedirs(log_dir, exist_ok=True)

    level = getattr(logging, log_level.upper(), logging.INFO)
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Clear existing handlers to avoid duplicates
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    log_file = os.path.join(
        log_dir, f"{name.lower()}_{datetime.now().strftime('%Y%m%d')}.log"
    )

    file_handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(fmt=DETAILED_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    )
    logger.addHandler(file_handler)

    # stdout carries command output, so the console handler writes to stderr
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(
            logging.Formatter(fmt=SIMPLE_FORMAT, datefmt="%H:%M:%S")
        )
        logger.addHandler(console_handler)

    logger.propagate = False

    logger.debug(f"Log file: {log_file}")

    return logger

