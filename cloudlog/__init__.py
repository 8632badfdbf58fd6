"""
cloudlog: Google Cloud structured logging entries

Builds log records in the JSON shape read by Cloud Logging (and, for
reported errors, Error Reporting) and plugs them into the standard
logging module.
"""

from cloudlog.config import LoggingConfig, load_config
from cloudlog.crash import install_excepthook, uninstall_excepthook
from cloudlog.errors import CloudLogError, ConfigError, EncodingError
from cloudlog.formatter import CloudLoggingFormatter, CloudTextFormatter
from cloudlog.logger import get_logger, setup_logging, validate_log_format
from cloudlog.models import (
    REPORTED_ERROR_EVENT_TYPE,
    HttpMethod,
    HttpRequest,
    LogSeverity,
    Operation,
    SourceLocation,
    StructuredLogEntry,
    Timestamp,
    to_json_lines,
)

__all__ = [
    'REPORTED_ERROR_EVENT_TYPE',
    'CloudLogError',
    'CloudLoggingFormatter',
    'CloudTextFormatter',
    'ConfigError',
    'EncodingError',
    'HttpMethod',
    'HttpRequest',
    'LogSeverity',
    'LoggingConfig',
    'Operation',
    'SourceLocation',
    'StructuredLogEntry',
    'Timestamp',
    'get_logger',
    'install_excepthook',
    'load_config',
    'setup_logging',
    'to_json_lines',
    'uninstall_excepthook',
    'validate_log_format',
]
__version__ = '1.0.0'
