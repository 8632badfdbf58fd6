"""
Google Cloud structured logging entry model.

Mirrors the JSON shape the Cloud Logging agent understands for a single
log line, see https://cloud.google.com/logging/docs/structured-logging.
Entries with the error-reporting ``@type`` marker are also grouped by
Error Reporting, see
https://cloud.google.com/error-reporting/docs/formatting-error-messages.
"""

import json
import logging
import time
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic_core import PydanticSerializationError

from cloudlog.errors import EncodingError

REPORTED_ERROR_EVENT_TYPE = (
    'type.googleapis.com/google.devtools.clouderrorreporting.v1beta1.ReportedErrorEvent'
)

OPERATION_KEY = 'logging.googleapis.com/operation'
SOURCE_LOCATION_KEY = 'logging.googleapis.com/sourceLocation'
INSERT_ID_KEY = 'logging.googleapis.com/insertId'
LABELS_KEY = 'logging.googleapis.com/labels'
SPAN_ID_KEY = 'logging.googleapis.com/spanId'
TRACE_KEY = 'logging.googleapis.com/trace'
TRACE_SAMPLED_KEY = 'logging.googleapis.com/trace_sampled'

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_NANOS_PER_SECOND = 1_000_000_000


class LogSeverity(str, Enum):
    """
    Severity of a log entry, as the LogSeverity values of the Logging API.

    The member values are the exact tokens written to the ``severity`` key.
    """

    DEFAULT = 'default'      # no assigned severity level
    DEBUG = 'debug'          # debug or trace information
    INFO = 'info'            # routine information
    NOTICE = 'notice'        # normal but significant events
    WARNING = 'warning'      # events that might cause problems
    ERROR = 'error'          # events likely to cause problems
    CRITICAL = 'critical'    # severe problems or outages
    ALERT = 'alert'          # a person must take action immediately
    EMERGENCY = 'emergency'  # one or more systems are unusable

    @classmethod
    def from_level(cls, levelno: int) -> 'LogSeverity':
        """
        Map a standard library logging level to a severity.

        Args:
            levelno: Numeric logging level (e.g. logging.WARNING)

        Returns:
            The closest severity at or below the given level
        """
        if levelno >= logging.CRITICAL:
            return cls.CRITICAL
        if levelno >= logging.ERROR:
            return cls.ERROR
        if levelno >= logging.WARNING:
            return cls.WARNING
        if levelno >= logging.INFO:
            return cls.INFO
        if levelno >= logging.DEBUG:
            return cls.DEBUG
        return cls.DEFAULT


class HttpMethod(str, Enum):
    GET = 'GET'
    HEAD = 'HEAD'
    PUT = 'PUT'
    POST = 'POST'
    DELETE = 'DELETE'
    PATCH = 'PATCH'
    OPTIONS = 'OPTIONS'


class Timestamp(BaseModel):
    """
    A UTC instant with nanosecond resolution.

    ``datetime`` only carries microseconds, so entries store this instead
    and render nine fractional digits, e.g. ``2021-12-20T16:33:41.643966093Z``.
    """

    model_config = ConfigDict(frozen=True)

    seconds: int
    nanos: int = Field(default=0, ge=0, lt=_NANOS_PER_SECOND)

    @classmethod
    def now(cls) -> 'Timestamp':
        return cls.from_nanos(time.time_ns())

    @classmethod
    def from_nanos(cls, value: int) -> 'Timestamp':
        """Build from nanoseconds since the Unix epoch (as time.time_ns())"""
        seconds, nanos = divmod(value, _NANOS_PER_SECOND)
        return cls(seconds=seconds, nanos=nanos)

    @classmethod
    def from_epoch(cls, value: float) -> 'Timestamp':
        """Build from float seconds since the epoch (as LogRecord.created)"""
        return cls.from_nanos(round(value * _NANOS_PER_SECOND))

    @classmethod
    def from_datetime(cls, value: datetime) -> 'Timestamp':
        """Naive datetimes are taken to be UTC already."""
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        delta = value - _EPOCH
        seconds = delta.days * 86400 + delta.seconds
        return cls(seconds=seconds, nanos=delta.microseconds * 1000)

    @classmethod
    def parse(cls, text: str) -> 'Timestamp':
        """
        Parse the text written by isoformat(), with any number of fractional digits.

        Raises:
            ValueError: If text is not a UTC timestamp ending in 'Z'
        """
        if not text.endswith('Z'):
            raise ValueError(f'Timestamp must be UTC with a Z suffix: {text!r}')
        whole, _, fraction = text[:-1].partition('.')
        if fraction and not fraction.isdigit():
            raise ValueError(f'Invalid fractional seconds: {text!r}')
        base = cls.from_datetime(datetime.strptime(whole, '%Y-%m-%dT%H:%M:%S'))
        nanos = int(fraction[:9].ljust(9, '0')) if fraction else 0
        return cls(seconds=base.seconds, nanos=nanos)

    def to_datetime(self) -> datetime:
        return _EPOCH + timedelta(seconds=self.seconds, microseconds=self.nanos // 1000)

    def isoformat(self) -> str:
        whole = _EPOCH + timedelta(seconds=self.seconds)
        return f'{whole.year:04d}-{whole:%m-%dT%H:%M:%S}.{self.nanos:09d}Z'

    def __str__(self) -> str:
        return self.isoformat()


class _Schema(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra='forbid')


class Operation(_Schema):
    """Groups related log entries into one logical operation."""

    # Entries with the same id belong to the same operation
    id: Optional[str] = None
    # id + producer must be globally unique, e.g. "github.com/MyProject/MyApplication"
    producer: Optional[str] = None
    first: Optional[bool] = None
    last: Optional[bool] = None


class SourceLocation(_Schema):
    """Where in the source the log statement was issued."""

    file: Optional[str] = None
    # Cloud Logging wants the line as a string; 1-based, "0" when unknown
    line: Optional[str] = None
    function: Optional[str] = None

    @field_validator('line', mode='before')
    @classmethod
    def line_as_text(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class HttpRequest(_Schema):
    """Subset of the LogEntry HttpRequest structure."""

    request_method: Optional[HttpMethod] = Field(default=None, alias='requestMethod')
    request_url: Optional[str] = Field(default=None, alias='requestUrl')
    request_size: Optional[str] = Field(default=None, alias='requestSize')
    status: Optional[int] = None
    response_size: Optional[str] = Field(default=None, alias='responseSize')
    user_agent: Optional[str] = Field(default=None, alias='userAgent')
    remote_ip: Optional[str] = Field(default=None, alias='remoteIp')
    server_ip: Optional[str] = Field(default=None, alias='serverIp')
    latency: Optional[Union[str, timedelta]] = None
    protocol: Optional[str] = None

    @field_validator('request_method', mode='before')
    @classmethod
    def method_upper(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.upper()
        return value

    @field_validator('request_size', 'response_size', mode='before')
    @classmethod
    def size_as_text(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_serializer('latency')
    def serialize_latency(self, value: Optional[Union[str, timedelta]]) -> Optional[str]:
        """Durations are rendered as seconds with up to nine digits and an 's' suffix"""
        if isinstance(value, timedelta):
            seconds = (value.days * 86400 + value.seconds) + value.microseconds / 1_000_000
            return f'{seconds:.9f}'.rstrip('0').rstrip('.') + 's'
        return value


class StructuredLogEntry(_Schema):
    """
    One structured log line for Cloud Logging.

    Every field is optional and fields left as None are left out of the
    JSON entirely. An entry with nothing set serializes to ``{}``.

    Example:
        entry = StructuredLogEntry(
            severity=LogSeverity.INFO,
            message='Start logging',
            operation=Operation(id='My Service', producer='MyService.Backend'),
        )
        print(entry.to_json())
    """

    severity: Optional[LogSeverity] = None
    # Python tracebacks appended here are picked up by Error Reporting
    message: Optional[str] = None
    # Set to REPORTED_ERROR_EVENT_TYPE to force Error Reporting to take the entry
    report_type: Optional[str] = Field(default=None, alias='@type')
    http_request: Optional[HttpRequest] = Field(default=None, alias='httpRequest')
    time: Optional[Timestamp] = None
    insert_id: Optional[str] = Field(default=None, alias=INSERT_ID_KEY)
    labels: Optional[Dict[str, str]] = Field(default=None, alias=LABELS_KEY)
    operation: Optional[Operation] = Field(default=None, alias=OPERATION_KEY)
    source_location: Optional[SourceLocation] = Field(default=None, alias=SOURCE_LOCATION_KEY)
    # 16 hex characters, e.g. "000000000000004a"
    span_id: Optional[str] = Field(default=None, alias=SPAN_ID_KEY)
    # e.g. "projects/my-projectid/traces/06796866738c859f2f19b7cfb3214824"
    trace: Optional[str] = Field(default=None, alias=TRACE_KEY)
    trace_sampled: Optional[bool] = Field(default=None, alias=TRACE_SAMPLED_KEY)

    @field_validator('severity', mode='before')
    @classmethod
    def severity_lower(cls, value: Any) -> Any:
        if isinstance(value, str) and not isinstance(value, LogSeverity):
            return value.lower()
        return value

    @field_validator('time', mode='before')
    @classmethod
    def coerce_time(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return Timestamp.from_datetime(value)
        if isinstance(value, str):
            return Timestamp.parse(value)
        return value

    @field_serializer('time')
    def serialize_time(self, value: Optional[Timestamp]) -> Optional[str]:
        return value.isoformat() if value is not None else None

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to a JSON-ready dict keyed by the Cloud Logging field names.

        Returns:
            Dict holding only the fields that were set
        """
        data = self.model_dump(mode='json', by_alias=True, exclude_none=True)
        if LABELS_KEY in data and not data[LABELS_KEY]:
            del data[LABELS_KEY]
        return data

    def to_json(self) -> str:
        """
        Serialize as a single-line JSON object.

        Returns:
            Compact JSON text without a trailing newline

        Raises:
            EncodingError: If a value cannot be represented as UTF-8 JSON
        """
        try:
            text = json.dumps(
                self.to_dict(),
                ensure_ascii=False,
                allow_nan=False,
                separators=(',', ':'),
            )
            text.encode('utf-8')
        except (ValueError, TypeError, PydanticSerializationError) as e:
            raise EncodingError(f'Cannot encode log entry: {e}') from e
        return text


def to_json_lines(entries: Iterable[StructuredLogEntry]) -> str:
    """
    Serialize entries as line-delimited JSON, one object per line.

    Args:
        entries: Entries to serialize

    Returns:
        Lines joined with newlines, each ending in a newline
    """
    return ''.join(entry.to_json() + '\n' for entry in entries)
