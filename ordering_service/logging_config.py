"""
logging_config.py — Centralized Logging Configuration for the Ordering Service

This module configures unified logging behavior for the entire application.
All modules log through the standard `logging` package with the same format.

Features:
    • Console output (stdout) plus an optional log file
    • Process ID tagging for multi-worker visibility
    • Reduced verbosity for the HTTP transport (httpx / httpcore)
"""

import logging
import sys


def setup_logging(level="INFO", log_file=None):
    """
    Configures the global logging system for the application.

    Args:
        level (str): Root log level name, e.g. "INFO" or "DEBUG".
        log_file (str | None): Path of a persistent log file. When empty or None,
            only the console handler is installed.
    """
    log_format = '%(asctime)s - %(levelname)s - [PID:%(process)d] - %(message)s'

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=log_format,
        handlers=handlers,
    )

    # Every backend call is an HTTP request; keep the transport quiet
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name):
    """
    Returns a logger instance for a given module or component name.

    Args:
        name (str): The logger name, typically the module's __name__.

    Returns:
        logging.Logger: A logger that follows the global format and handlers.
    """
    return logging.getLogger(name)
