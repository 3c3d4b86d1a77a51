"""Core types: results, exit codes and run configuration."""

from .config import Config, ConfigError, load_config
from .errors import ErrorCode
from .result import Err, Ok, Result

__all__ = [
    # config
    "Config",
    "ConfigError",
    "load_config",
    # errors
    "ErrorCode",
    # result
    "Err",
    "Ok",
    "Result",
]
