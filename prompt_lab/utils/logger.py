"""
Logger module - Logging configuration and utilities

This module provides logging configuration with support for:
- Console and rotating file logging
- Configuration from .env
- Unicode support on Windows
"""

import logging
import logging.handlers
import sys
import os
import codecs
from pathlib import Path
from typing import Optional

# Fix Unicode support on Windows BEFORE any logging is configured
if sys.platform == 'win32':
    try:
        if hasattr(sys.stdout, 'encoding') and sys.stdout.encoding and sys.stdout.encoding.lower() != 'utf-8':
            sys.stdout = codecs.getwriter('utf-8')(sys.stdout.buffer, 'backslashreplace')
            sys.stderr = codecs.getwriter('utf-8')(sys.stderr.buffer, 'backslashreplace')
    except (AttributeError, TypeError):
        pass

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
ROOT_LOGGER_NAME = "prompt_lab"

_logging_initialized = False


def _env_flag(key: str, default: str) -> bool:
    return os.getenv(key, default).lower() in ('true', '1', 'yes', 'on')


def configure_logging(
    log_level: Optional[str] = None,
    log_folder: Optional[str] = None,
    enable_console: Optional[bool] = None,
    enable_file: Optional[bool] = None,
    max_bytes: Optional[int] = None,
    backup_count: Optional[int] = None,
    force: bool = False
) -> logging.Logger:
    """
    Configure the package root logger.

    Explicit arguments win over environment variables:
    PROMPT_LAB_LOG_LEVEL, PROMPT_LAB_LOG_FOLDER, PROMPT_LAB_ENABLE_CONSOLE_LOGGING,
    PROMPT_LAB_ENABLE_FILE_LOGGING, PROMPT_LAB_LOG_MAX_BYTES, PROMPT_LAB_LOG_BACKUP_COUNT.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_folder: Folder for the rotating log file
        enable_console: Attach a stdout handler
        enable_file: Attach a rotating file handler
        max_bytes: Max file size before rotation
        backup_count: Number of rotated files to keep
        force: Reconfigure even if logging was already set up

    Returns:
        The configured package root logger
    """
    global _logging_initialized

    root = logging.getLogger(ROOT_LOGGER_NAME)
    if _logging_initialized and not force:
        return root

    _logging_initialized = True

    level_name = (log_level or os.getenv("PROMPT_LAB_LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)
    if enable_console is None:
        enable_console = _env_flag("PROMPT_LAB_ENABLE_CONSOLE_LOGGING", "true")
    if enable_file is None:
        enable_file = _env_flag("PROMPT_LAB_ENABLE_FILE_LOGGING", "false")
    log_folder = log_folder or os.getenv("PROMPT_LAB_LOG_FOLDER", "./logs")
    max_bytes = max_bytes or int(os.getenv("PROMPT_LAB_LOG_MAX_BYTES", "10485760"))  # 10MB default
    backup_count = backup_count or int(os.getenv("PROMPT_LAB_LOG_BACKUP_COUNT", "5"))

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    root.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    if enable_console:
        console = logging.StreamHandler(sys.stdout)
        console.setLevel(level)
        console.setFormatter(formatter)
        root.addHandler(console)

    if enable_file:
        Path(log_folder).mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            Path(log_folder) / "prompt_lab.log",
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8"
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    if not root.handlers:
        root.addHandler(logging.NullHandler())

    return root


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Get or create a logger with standard formatting and .env configuration.

    The package root logger is configured on first call; module loggers
    (``prompt_lab.*``) propagate to it.

    Args:
        name: Logger name (typically __name__)
        level: Optional logging level override for this logger

    Returns:
        Configured logger instance
    """
    configure_logging()

    logger = logging.getLogger(name)
    if level:
        logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return logger
