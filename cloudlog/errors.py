"""
Exceptions raised by cloudlog.
"""


class CloudLogError(Exception):
    """Base class for cloudlog errors"""
    pass


class EncodingError(CloudLogError):
    """A log entry could not be encoded as a JSON line"""
    pass


class ConfigError(CloudLogError):
    """Configuration validation error"""
    pass
