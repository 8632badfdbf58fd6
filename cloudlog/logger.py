"""
Logger setup and line validation for Cloud Logging output.
"""

import json
import logging
import sys
from typing import IO, Optional

from cloudlog.config import LoggingConfig, load_config
from cloudlog.formatter import make_formatter
from cloudlog.models import (
    OPERATION_KEY,
    REPORTED_ERROR_EVENT_TYPE,
    SOURCE_LOCATION_KEY,
    LogSeverity,
    Timestamp,
)

_SEVERITY_TOKENS = {severity.value for severity in LogSeverity}


def get_logger(
    name: str,
    level: Optional[int] = None,
    log_file: Optional[str] = None,
    log_format: Optional[str] = None,
    config: Optional[LoggingConfig] = None
) -> logging.Logger:
    """
    Get a pre-configured logger instance.

    Args:
        name: Logger name (typically __name__)
        level: Logging level (default: from config, INFO)
        log_file: Optional file path for file handler
        log_format: 'json' or 'text' (default: from config, LOG_FORMAT)
        config: LoggingConfig to use (default: load_config())

    Returns:
        Configured logger instance

    Example:
        logger = get_logger(__name__)
        logger.info("User action", extra={'labels': {'user_id': '123'}})
    """
    config = config or load_config()
    if log_format is not None:
        config = LoggingConfig(**{**config.model_dump(), 'log_format': log_format})
    level = config.level if level is None else level
    log_file = log_file or config.log_file

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Check if we already have handlers to avoid duplicates
    has_console_handler = any(isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
                              for h in logger.handlers)
    has_file_handler = any(isinstance(h, logging.FileHandler) and h.baseFilename == log_file
                           for h in logger.handlers) if log_file else False

    # Console handler, stdout is what the Cloud Logging agent collects
    if not has_console_handler:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(make_formatter(config))
        logger.addHandler(console_handler)

    # File handler (optional)
    if log_file and not has_file_handler:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(make_formatter(config))
        logger.addHandler(file_handler)

    return logger


def setup_logging(
    config: Optional[LoggingConfig] = None,
    stream: Optional[IO[str]] = None
) -> logging.Logger:
    """
    Configure the root logger for Cloud Logging output.

    Existing root handlers are removed so repeated calls do not duplicate
    output.

    Args:
        config: LoggingConfig to use (default: load_config())
        stream: Stream for the console handler (default: sys.stdout)

    Returns:
        The root logger
    """
    config = config or load_config()

    root_logger = logging.getLogger()
    root_logger.setLevel(config.level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    handlers = [logging.StreamHandler(stream or sys.stdout)]
    if config.log_file:
        handlers.append(logging.FileHandler(config.log_file))

    for handler in handlers:
        handler.setLevel(config.level)
        handler.setFormatter(make_formatter(config))
        root_logger.addHandler(handler)

    return root_logger


def validate_log_format(log_line: str) -> bool:
    """
    Validate that a log line is a well-formed Cloud Logging entry.

    Args:
        log_line: Log line to validate

    Returns:
        True if the line is one JSON object with valid known fields, False otherwise
    """
    try:
        data = json.loads(log_line)
    except (json.JSONDecodeError, TypeError):
        return False

    if not isinstance(data, dict):
        return False

    if 'severity' in data and data['severity'] not in _SEVERITY_TOKENS:
        return False

    if '@type' in data and data['@type'] != REPORTED_ERROR_EVENT_TYPE:
        return False

    if 'time' in data and not _valid_time(data['time']):
        return False

    for key in (OPERATION_KEY, SOURCE_LOCATION_KEY):
        if key in data and not isinstance(data[key], dict):
            return False

    # Null values are never written, absent fields are left out instead
    return all(value is not None for value in data.values())


def _valid_time(value: object) -> bool:
    if not isinstance(value, str):
        return False
    try:
        Timestamp.parse(value)
    except ValueError:
        return False
    return True
