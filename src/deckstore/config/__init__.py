"""Deckstore configuration.

This module provides the public API for configuration management:
loading from TOML and environment variables, and typed access to values.

Example:
    >>> from deckstore.config import load_config
    >>> config = load_config()
    >>> config.retry.max_attempts
    8
"""

from deckstore.exceptions import ConfigError, ConfigLoadError, ConfigValidationError

from ._load import CONFIG_PATH_ENV, load_config
from ._loader import deep_merge, parse_env_vars, parse_string_value, read_toml_file
from ._models import (
    DeckstoreConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
    RetryConfiguration,
    StoreBackend,
    StoreConfiguration,
)

__all__ = [
    "CONFIG_PATH_ENV",
    "ConfigError",
    "ConfigLoadError",
    "ConfigValidationError",
    "DeckstoreConfig",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "RetryConfiguration",
    "StoreBackend",
    "StoreConfiguration",
    "deep_merge",
    "load_config",
    "parse_env_vars",
    "parse_string_value",
    "read_toml_file",
]
