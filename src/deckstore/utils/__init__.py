"""Shared utilities."""

from ._logging import (
    LogFormatType,
    create_logger,
    create_logger_from_config,
    open_log_stream,
)
from ._time import utc_now

__all__ = [
    "LogFormatType",
    "create_logger",
    "create_logger_from_config",
    "open_log_stream",
    "utc_now",
]
