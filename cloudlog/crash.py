"""
Uncaught exception hook writing crashes as Cloud Logging entries.
"""

import logging
import sys
import traceback
from typing import IO, Callable, Optional

from cloudlog.config import LoggingConfig, load_config
from cloudlog.formatter import CloudLoggingFormatter

ExceptHook = Callable[..., None]

CRASH_LOGGER_NAME = 'cloudlog.crash'


def _crash_logger(stream: Optional[IO[str]], config: LoggingConfig) -> logging.Logger:
    logger = logging.getLogger(CRASH_LOGGER_NAME)
    logger.setLevel(logging.CRITICAL)
    logger.propagate = False

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(CloudLoggingFormatter.from_config(config))
    logger.addHandler(handler)
    return logger


def install_excepthook(
    logger: Optional[logging.Logger] = None,
    stream: Optional[IO[str]] = None,
    config: Optional[LoggingConfig] = None
) -> ExceptHook:
    """
    Report uncaught exceptions as one structured line each.

    The crash is logged at CRITICAL with its traceback in the message, so
    Error Reporting groups it like any other reported error.

    Args:
        logger: Logger to write to (default: a dedicated JSON logger on stderr)
        stream: Stream for the dedicated logger (ignored when logger is given)
        config: LoggingConfig for the dedicated logger (default: load_config())

    Returns:
        The previously installed hook, for uninstall_excepthook()
    """
    if logger is None:
        logger = _crash_logger(stream, config or load_config())

    previous = sys.excepthook

    def _hook(exc_type, exc_value, exc_tb):
        if issubclass(exc_type, KeyboardInterrupt):
            previous(exc_type, exc_value, exc_tb)
            return
        if not logger.isEnabledFor(logging.CRITICAL):
            return

        # Source location is the frame that raised, not this hook
        frames = traceback.extract_tb(exc_tb)
        origin = frames[-1] if frames else None
        record = logger.makeRecord(
            logger.name,
            logging.CRITICAL,
            origin.filename if origin else '(unknown file)',
            origin.lineno if origin else 0,
            'Uncaught exception: %s',
            (exc_value,),
            (exc_type, exc_value, exc_tb),
            func=origin.name if origin else None,
        )
        logger.handle(record)

    sys.excepthook = _hook
    return previous


def uninstall_excepthook(previous: ExceptHook) -> None:
    sys.excepthook = previous
