"""
logging.Formatter implementations producing Cloud Logging lines.
"""

import logging
from typing import Any, Dict, Optional

from cloudlog.config import LoggingConfig
from cloudlog.models import (
    REPORTED_ERROR_EVENT_TYPE,
    HttpRequest,
    LogSeverity,
    Operation,
    SourceLocation,
    StructuredLogEntry,
    Timestamp,
)

TEXT_FORMAT = '%(levelname)-5s:%(name)s - %(message)s'

# LogRecord attributes copied verbatim onto the entry when present
_PASSTHROUGH_EXTRAS = ('trace', 'span_id', 'trace_sampled', 'insert_id')


class CloudLoggingFormatter(logging.Formatter):
    """
    Formats log records as Google Cloud structured logging JSON.

    Output format (one line):
    {
        "severity": "error",
        "message": "Payment failed\\nTraceback (most recent call last): ...",
        "@type": "type.googleapis.com/google.devtools.clouderrorreporting.v1beta1.ReportedErrorEvent",
        "time": "2026-02-08T20:30:00.123456000Z",
        "logging.googleapis.com/operation": {...},
        "logging.googleapis.com/sourceLocation": {...}
    }

    Per-record fields can be passed through ``extra``:
        logger.info('Charge', extra={'labels': {'user': '42'}, 'trace': '...'})
    """

    def __init__(
        self,
        operation: Optional[Operation] = None,
        report_errors: bool = True,
        include_source: bool = True,
        labels: Optional[Dict[str, str]] = None
    ):
        super().__init__()
        self.operation = operation
        self.report_errors = report_errors
        self.include_source = include_source
        self.labels = dict(labels or {})

    @classmethod
    def from_config(cls, config: LoggingConfig) -> 'CloudLoggingFormatter':
        operation = None
        if config.operation_id or config.operation_producer:
            operation = Operation(id=config.operation_id, producer=config.operation_producer)
        return cls(
            operation=operation,
            report_errors=config.report_errors,
            include_source=config.include_source,
            labels=config.labels,
        )

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as a Cloud Logging JSON line"""
        return self.build_entry(record).to_json()

    def build_entry(self, record: logging.LogRecord) -> StructuredLogEntry:
        severity = self._severity(record)

        entry = StructuredLogEntry(
            severity=severity,
            message=self._message(record),
            time=Timestamp.from_epoch(record.created),
            operation=self._operation(record),
            labels=self._labels(record),
            http_request=self._http_request(record),
            **{name: getattr(record, name) for name in _PASSTHROUGH_EXTRAS
               if getattr(record, name, None) is not None}
        )

        if self.report_errors and record.levelno >= logging.ERROR:
            entry.report_type = REPORTED_ERROR_EVENT_TYPE

        if self.include_source:
            entry.source_location = SourceLocation(
                file=record.pathname,
                line=str(record.lineno),
                function=f'{record.module}.{record.funcName}' if record.funcName else record.module,
            )

        return entry

    def _severity(self, record: logging.LogRecord) -> LogSeverity:
        # Lets callers reach notice/alert/emergency, which have no stdlib level
        override = getattr(record, 'severity', None)
        if override is not None:
            return LogSeverity(override.lower() if isinstance(override, str) else override)
        return LogSeverity.from_level(record.levelno)

    def _message(self, record: logging.LogRecord) -> str:
        message = record.getMessage()

        # Error Reporting recognises a Python traceback following the message
        if record.exc_info:
            if not record.exc_text:
                record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            message = f'{message}\n{record.exc_text}'
        if record.stack_info:
            message = f'{message}\n{self.formatStack(record.stack_info)}'

        return message

    def _operation(self, record: logging.LogRecord) -> Optional[Operation]:
        operation = getattr(record, 'operation', None)
        if operation is None:
            return self.operation
        if isinstance(operation, Operation):
            return operation
        return Operation.model_validate(operation)

    def _labels(self, record: logging.LogRecord) -> Optional[Dict[str, str]]:
        labels = dict(self.labels)
        labels.update({str(k): str(v) for k, v in (getattr(record, 'labels', None) or {}).items()})
        return labels or None

    def _http_request(self, record: logging.LogRecord) -> Optional[HttpRequest]:
        request: Any = getattr(record, 'http_request', None)
        if request is None or isinstance(request, HttpRequest):
            return request
        return HttpRequest.model_validate(request)


class CloudTextFormatter(logging.Formatter):
    """Plain text formatter for local development"""

    def __init__(self):
        super().__init__(TEXT_FORMAT)


def make_formatter(config: LoggingConfig) -> logging.Formatter:
    """Pick the formatter matching config.log_format"""
    if config.log_format == 'text':
        return CloudTextFormatter()
    return CloudLoggingFormatter.from_config(config)
