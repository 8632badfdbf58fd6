"""
Logging configuration from environment variables and an optional YAML file.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from cloudlog.errors import ConfigError

# Environment variable -> LoggingConfig field
ENV_VARS = {
    'LOG_FORMAT': 'log_format',
    'LOG_LEVEL': 'log_level',
    'LOG_OPERATION_ID': 'operation_id',
    'LOG_OPERATION_PRODUCER': 'operation_producer',
    'LOG_REPORT_ERRORS': 'report_errors',
    'LOG_INCLUDE_SOURCE': 'include_source',
    'LOG_FILE': 'log_file',
}

VALID_FORMATS = ('json', 'text')


class LoggingConfig(BaseModel):
    """Settings for the Cloud Logging formatter and handlers"""

    log_format: str = 'json'
    log_level: str = 'INFO'
    operation_id: Optional[str] = None
    operation_producer: Optional[str] = None
    report_errors: bool = True
    include_source: bool = True
    labels: Dict[str, str] = Field(default_factory=dict)
    log_file: Optional[str] = None

    @field_validator('log_format')
    @classmethod
    def validate_log_format(cls, value: str) -> str:
        value = value.lower()
        if value not in VALID_FORMATS:
            raise ValueError(f'Invalid log_format: {value}. Must be one of {list(VALID_FORMATS)}')
        return value

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        value = value.upper()
        if not isinstance(logging.getLevelName(value), int):
            raise ValueError(f'Invalid log_level: {value}')
        return value

    @property
    def level(self) -> int:
        return logging.getLevelName(self.log_level)


def _read_yaml(config_path: Union[str, Path]) -> Dict[str, Any]:
    try:
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigError(f'Config file not found: {config_path}')
    except yaml.YAMLError as e:
        raise ConfigError(f'Invalid YAML: {e}')

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f'Config file must contain a mapping: {config_path}')

    # Accept either a dedicated `logging:` section or a flat document
    section = data.get('logging', data)
    if not isinstance(section, dict):
        raise ConfigError(f"'logging' section must be a mapping: {config_path}")
    return section


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None
) -> LoggingConfig:
    """
    Build the logging configuration.

    Defaults are overlaid by the YAML file (if given), then by LOG_*
    environment variables.

    Args:
        config_path: Optional path to a YAML config file
        environ: Environment mapping (default: os.environ)

    Returns:
        Validated LoggingConfig

    Raises:
        ConfigError: If the file is missing or invalid, or a value is invalid
    """
    environ = os.environ if environ is None else environ

    values: Dict[str, Any] = {}
    if config_path:
        values.update(_read_yaml(config_path))

    for var, field_name in ENV_VARS.items():
        if environ.get(var):
            values[field_name] = environ[var]

    try:
        return LoggingConfig(**values)
    except ValidationError as e:
        raise ConfigError(f'Invalid logging configuration: {e}') from e
