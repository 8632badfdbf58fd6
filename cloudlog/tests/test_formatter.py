"""
Unit tests for the Cloud Logging formatters.
"""

import json
import logging
import sys

import pytest

from cloudlog.config import LoggingConfig
from cloudlog.formatter import CloudLoggingFormatter, CloudTextFormatter, make_formatter
from cloudlog.models import (
    LABELS_KEY,
    OPERATION_KEY,
    REPORTED_ERROR_EVENT_TYPE,
    SOURCE_LOCATION_KEY,
    HttpRequest,
    Operation,
)


def make_record(level=logging.INFO, msg='Test message', args=(), exc_info=None, **extra):
    record = logging.LogRecord(
        name='test_logger',
        level=level,
        pathname='/srv/app/handlers.py',
        lineno=42,
        msg=msg,
        args=args,
        exc_info=exc_info,
        func='handle',
    )
    record.created = 1640018021.5
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestCloudLoggingFormatter:
    """Test CloudLoggingFormatter"""

    def test_format_basic_log(self):
        """Should format log as Cloud Logging JSON"""
        formatter = CloudLoggingFormatter()

        data = json.loads(formatter.format(make_record()))

        assert data['severity'] == 'info'
        assert data['message'] == 'Test message'
        assert data['time'] == '2021-12-20T16:33:41.500000000Z'
        assert '@type' not in data
        assert OPERATION_KEY not in data

    def test_message_args(self):
        formatter = CloudLoggingFormatter()

        data = json.loads(formatter.format(make_record(msg='%s items', args=(3,))))

        assert data['message'] == '3 items'

    def test_source_location(self):
        formatter = CloudLoggingFormatter()

        data = json.loads(formatter.format(make_record()))

        assert data[SOURCE_LOCATION_KEY] == {
            'file': '/srv/app/handlers.py',
            'line': '42',
            'function': 'handlers.handle',
        }

    def test_source_location_disabled(self):
        formatter = CloudLoggingFormatter(include_source=False)

        data = json.loads(formatter.format(make_record()))

        assert SOURCE_LOCATION_KEY not in data

    @pytest.mark.parametrize('level,severity', [
        (logging.DEBUG, 'debug'),
        (logging.INFO, 'info'),
        (logging.WARNING, 'warning'),
        (logging.ERROR, 'error'),
        (logging.CRITICAL, 'critical'),
        (5, 'default'),
    ])
    def test_level_mapping(self, level, severity):
        formatter = CloudLoggingFormatter()

        data = json.loads(formatter.format(make_record(level=level)))

        assert data['severity'] == severity

    def test_severity_override(self):
        """Should let callers pick severities without a stdlib level"""
        formatter = CloudLoggingFormatter()

        data = json.loads(formatter.format(make_record(severity='notice')))

        assert data['severity'] == 'notice'

    def test_error_sets_report_type(self):
        formatter = CloudLoggingFormatter()

        data = json.loads(formatter.format(make_record(level=logging.ERROR)))

        assert data['@type'] == REPORTED_ERROR_EVENT_TYPE

    def test_warning_has_no_report_type(self):
        formatter = CloudLoggingFormatter()

        data = json.loads(formatter.format(make_record(level=logging.WARNING)))

        assert '@type' not in data

    def test_report_errors_disabled(self):
        formatter = CloudLoggingFormatter(report_errors=False)

        data = json.loads(formatter.format(make_record(level=logging.CRITICAL)))

        assert data['severity'] == 'critical'
        assert '@type' not in data

    def test_format_with_exception(self):
        """Should append the traceback to the message"""
        formatter = CloudLoggingFormatter()

        try:
            raise ValueError('Test error')
        except ValueError:
            exc_info = sys.exc_info()

        data = json.loads(formatter.format(make_record(
            level=logging.ERROR, msg='Error occurred', exc_info=exc_info,
        )))

        assert data['message'].startswith('Error occurred\nTraceback (most recent call last):')
        assert 'ValueError: Test error' in data['message']
        assert data['@type'] == REPORTED_ERROR_EVENT_TYPE

    def test_default_operation(self):
        formatter = CloudLoggingFormatter(operation=Operation(id='My Service', producer='MyService.Backend'))

        data = json.loads(formatter.format(make_record()))

        assert data[OPERATION_KEY] == {'id': 'My Service', 'producer': 'MyService.Backend'}

    def test_record_operation_overrides_default(self):
        formatter = CloudLoggingFormatter(operation=Operation(id='default'))

        data = json.loads(formatter.format(make_record(operation={'id': 'req-1', 'last': True})))

        assert data[OPERATION_KEY] == {'id': 'req-1', 'last': True}

    def test_labels_merged(self):
        formatter = CloudLoggingFormatter(labels={'env': 'prod', 'team': 'core'})

        data = json.loads(formatter.format(make_record(labels={'team': 'billing', 'user_id': 7})))

        assert data[LABELS_KEY] == {'env': 'prod', 'team': 'billing', 'user_id': '7'}

    def test_no_labels_omitted(self):
        data = json.loads(CloudLoggingFormatter().format(make_record()))

        assert LABELS_KEY not in data

    def test_trace_extras(self):
        formatter = CloudLoggingFormatter()

        data = json.loads(formatter.format(make_record(
            trace='projects/p/traces/abc', span_id='000000000000004a', trace_sampled=True,
        )))

        assert data['logging.googleapis.com/trace'] == 'projects/p/traces/abc'
        assert data['logging.googleapis.com/spanId'] == '000000000000004a'
        assert data['logging.googleapis.com/trace_sampled'] is True

    def test_http_request_extra(self):
        formatter = CloudLoggingFormatter()

        data = json.loads(formatter.format(make_record(
            http_request=HttpRequest(request_method='POST', status=201),
        )))

        assert data['httpRequest'] == {'requestMethod': 'POST', 'status': 201}

    def test_http_request_extra_dict(self):
        formatter = CloudLoggingFormatter()

        data = json.loads(formatter.format(make_record(http_request={'requestUrl': '/health'})))

        assert data['httpRequest'] == {'requestUrl': '/health'}

    def test_from_config(self):
        config = LoggingConfig(
            operation_id='op', operation_producer='Svc.Worker',
            report_errors=False, include_source=False, labels={'env': 'dev'},
        )

        formatter = CloudLoggingFormatter.from_config(config)

        assert formatter.operation == Operation(id='op', producer='Svc.Worker')
        assert formatter.report_errors is False
        assert formatter.include_source is False
        assert formatter.labels == {'env': 'dev'}

    def test_from_config_without_operation(self):
        assert CloudLoggingFormatter.from_config(LoggingConfig()).operation is None


class TestTextFormatter:
    """Test the plain text alternative"""

    def test_text_output(self):
        output = CloudTextFormatter().format(make_record(level=logging.WARNING, msg='careful'))

        assert output == 'WARNING:test_logger - careful'
        with pytest.raises(json.JSONDecodeError):
            json.loads(output)

    def test_make_formatter(self):
        assert isinstance(make_formatter(LoggingConfig(log_format='text')), CloudTextFormatter)
        assert isinstance(make_formatter(LoggingConfig()), CloudLoggingFormatter)
