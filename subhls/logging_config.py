#!/usr/bin/env python3
"""
Logging Configuration Module

Standardized logging setup for ass2hls. Console output goes to stderr,
since stdout may be part of a shell pipeline; an optional rotating log file
and JSON formatting are available for long-running deployments.
"""

import json
import logging
import logging.handlers
import os
import sys
from typing import Dict, Optional

# Default log directory
DEFAULT_LOG_DIR = os.environ.get("LOG_DIR", os.path.expanduser("~/.ass2hls/logs"))

# Default logging levels
DEFAULT_CONSOLE_LEVEL = os.environ.get("CONSOLE_LOG_LEVEL", "INFO")
DEFAULT_FILE_LEVEL = os.environ.get("FILE_LOG_LEVEL", "DEBUG")

# Format strings
DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
SIMPLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
JSON_FORMAT = {
    "timestamp": "%(asctime)s",
    "name": "%(name)s",
    "level": "%(levelname)s",
    "file": "%(filename)s",
    "line": "%(lineno)d",
    "message": "%(message)s"
}


class JsonFormatter(logging.Formatter):
    """Custom formatter that outputs log records as JSON objects."""

    def __init__(self, fmt_dict: Optional[Dict] = None):
        """
        Initialize the JSON formatter.

        Args:
            fmt_dict: Format dictionary (keys are output keys, values are log record attributes)
        """
        self.fmt_dict = fmt_dict or JSON_FORMAT
        super().__init__()

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        record.asctime = self.formatTime(record)

        record_dict = {}
        for key, fmt in self.fmt_dict.items():
            try:
                record_dict[key] = fmt % record.__dict__
            except (KeyError, TypeError, ValueError):
                record_dict[key] = fmt

        if record.exc_info:
            record_dict["exception"] = self.formatException(record.exc_info)

        return json.dumps(record_dict, ensure_ascii=False)


def _make_formatter(formatter: str) -> logging.Formatter:
    if formatter == "json":
        return JsonFormatter()
    if formatter == "detailed":
        return logging.Formatter(DETAILED_FORMAT)
    return logging.Formatter(SIMPLE_FORMAT)


def get_rotating_file_handler(
    log_file: str,
    level: str = DEFAULT_FILE_LEVEL,
    max_bytes: int = 10485760,  # 10MB
    backup_count: int = 10,
    formatter: str = "detailed"
) -> logging.Handler:
    """
    Create a rotating file handler.

    Args:
        log_file: Path to the log file
        level: Logging level
        max_bytes: Maximum file size before rotation
        backup_count: Number of backup files to keep
        formatter: Formatter to use

    Returns:
        logging.Handler: Configured handler
    """
    handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(_make_formatter(formatter))
    return handler


def get_console_handler(
    level: str = DEFAULT_CONSOLE_LEVEL,
    formatter: str = "simple"
) -> logging.Handler:
    """Create a console handler writing to stderr."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(_make_formatter(formatter))
    return handler


def configure_logging(
    service_name: str,
    console_level: str = DEFAULT_CONSOLE_LEVEL,
    file_level: str = DEFAULT_FILE_LEVEL,
    log_dir: str = DEFAULT_LOG_DIR,
    enable_console: bool = True,
    enable_file: bool = False,
    log_format: str = "simple",
    json_logs: bool = False
) -> logging.Logger:
    """
    Configure logging for a service.

    Module loggers are named ``<service_name>.<module>`` and propagate to
    the logger configured here.

    Args:
        service_name: Name of the service
        console_level: Console logging level
        file_level: File logging level
        log_dir: Directory for log files
        enable_console: Enable console logging
        enable_file: Enable file logging
        log_format: Format for logs ("simple", "detailed")
        json_logs: Whether to format logs as JSON

    Returns:
        logging.Logger: Configured logger
    """
    logger = logging.getLogger(service_name)
    logger.setLevel(logging.DEBUG)  # Handlers filter

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    if json_logs:
        log_format = "json"

    if enable_console:
        logger.addHandler(get_console_handler(console_level, log_format))

    if enable_file:
        os.makedirs(log_dir, exist_ok=True)
        log_file = os.path.join(log_dir, f"{service_name}.log")
        logger.addHandler(get_rotating_file_handler(log_file, file_level, formatter=log_format))

    # Don't propagate to root logger
    logger.propagate = False

    logger.debug(f"Logging configured for {service_name}")
    return logger
