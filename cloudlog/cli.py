"""
Command line tool for emitting and checking Cloud Logging lines.
"""

import logging
import sys

import click

from cloudlog.config import LoggingConfig, load_config
from cloudlog.errors import ConfigError, EncodingError
from cloudlog.formatter import make_formatter
from cloudlog.logger import validate_log_format
from cloudlog.models import (
    REPORTED_ERROR_EVENT_TYPE,
    LogSeverity,
    Operation,
    StructuredLogEntry,
    Timestamp,
)

DEMO_LOGGER_NAME = 'cloudlog.demo'
# Below DEBUG, written with the "default" severity
TRACE_LEVEL = 5


def _parse_labels(ctx, param, values):
    labels = {}
    for item in values:
        key, sep, value = item.partition('=')
        if not sep or not key:
            raise click.BadParameter(f"Expected KEY=VALUE, got '{item}'")
        labels[key] = value
    return labels


@click.group()
@click.option('--config', 'config_path', type=click.Path(dir_okay=False), default=None,
              help='YAML config file')
@click.pass_context
def cli(ctx, config_path):
    """Google Cloud structured logging tools"""
    try:
        ctx.obj = load_config(config_path)
    except ConfigError as e:
        raise click.ClickException(str(e))


@cli.command()
@click.option('--format', 'log_format', type=click.Choice(['json', 'text']), default=None,
              help='Output format (default: LOG_FORMAT or json)')
@click.option('--operation-id', default='My Service', help='Operation id')
@click.option('--producer', default='MyService.Backend', help='Operation producer')
@click.pass_obj
def demo(config: LoggingConfig, log_format, operation_id, producer):
    """Log a few example statements through the logging integration"""
    config = LoggingConfig(**{
        **config.model_dump(),
        'log_format': log_format or config.log_format,
        'operation_id': operation_id,
        'operation_producer': producer,
    })

    logger = logging.getLogger(DEMO_LOGGER_NAME)
    logger.setLevel(TRACE_LEVEL)
    logger.propagate = False
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(make_formatter(config))
    logger.addHandler(handler)

    try:
        logger.info('Start logging')
        logger.warning('Oh no, things might go wrong soon.')
        logger.error('Yeah, this is not good.')
        logger.log(TRACE_LEVEL, 'Something went wrong in `my service`.')
    finally:
        logger.removeHandler(handler)
        handler.flush()


@cli.command()
@click.option('--severity', type=click.Choice([s.value for s in LogSeverity]), default=None,
              help='Entry severity')
@click.option('--message', '-m', default=None, help='Message text')
@click.option('--operation-id', default=None, help='Operation id')
@click.option('--producer', default=None, help='Operation producer')
@click.option('--report/--no-report', default=None,
              help='Add the Error Reporting @type marker (default: for error and above)')
@click.option('--label', 'labels', multiple=True, callback=_parse_labels, help='Label as KEY=VALUE')
@click.option('--time/--no-time', 'with_time', default=True, help='Stamp the entry with the current time')
def emit(severity, message, operation_id, producer, report, labels, with_time):
    """Print a single structured log line"""
    if report is None:
        report = severity in (LogSeverity.ERROR.value, LogSeverity.CRITICAL.value,
                              LogSeverity.ALERT.value, LogSeverity.EMERGENCY.value)

    entry = StructuredLogEntry(
        severity=severity,
        message=message,
        report_type=REPORTED_ERROR_EVENT_TYPE if report else None,
        time=Timestamp.now() if with_time else None,
        labels=labels or None,
        operation=Operation(id=operation_id, producer=producer) if operation_id or producer else None,
    )

    try:
        click.echo(entry.to_json())
    except EncodingError as e:
        raise click.ClickException(str(e))


@cli.command()
@click.argument('source', type=click.File('r'), default='-')
def validate(source):
    """Check line-delimited JSON log output (default: stdin)"""
    invalid = 0
    total = 0

    for number, line in enumerate(source, start=1):
        line = line.strip()
        if not line:
            continue
        total += 1
        if not validate_log_format(line):
            invalid += 1
            click.echo(click.style(f'✗ line {number}: {line[:80]}', fg='red'), err=True)

    if invalid:
        click.echo(click.style(f'❌ {invalid} of {total} lines invalid', fg='red'), err=True)
        sys.exit(1)

    click.echo(click.style(f'✓ {total} lines valid', fg='green'))


def main():
    cli(prog_name='cloudlog')


if __name__ == '__main__':
    main()
