"""Logging utilities for deckstore.

This module provides standalone structlog logger factories that write
JSON-formatted or text-formatted logs to a file or stream. Each logger is
self-contained and does not modify global structlog configuration, so the
library never interferes with an application's own logging setup.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from os import getenv
from pathlib import Path
from typing import TYPE_CHECKING, Literal, TextIO, cast

import structlog

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from deckstore.config import LoggingConfig

LogFormatType = Literal["json", "text"]


def _get_log_level() -> int:
    """Get the log level from environment variables.

    Checks DECKSTORE_DEBUG first (sets DEBUG if present), then
    DECKSTORE_LOG_LEVEL. Defaults to INFO if neither is set.

    Returns:
        The logging level as an integer.
    """
    if getenv("DECKSTORE_DEBUG", None):
        return logging.DEBUG

    log_levels = logging.getLevelNamesMapping()
    return log_levels.get(getenv("DECKSTORE_LOG_LEVEL", "info").upper(), logging.INFO)


def _log_level_from_string(level: str, *, respect_env: bool = False) -> int:
    """Convert a log level string to a logging level integer.

    Args:
        level: Log level string (debug, info, warning, error).
        respect_env: If True, DECKSTORE_DEBUG overrides to DEBUG level.

    Returns:
        The logging level as an integer.
    """
    if respect_env and getenv("DECKSTORE_DEBUG", None):
        return logging.DEBUG

    log_levels = logging.getLevelNamesMapping()
    return log_levels.get(level.upper(), logging.INFO)


@contextmanager
def open_log_stream(log_file: str) -> Iterator[TextIO | None]:
    """Open a log file in append mode for the duration of a block.

    Missing parent directories are created. An empty path yields None, which
    makes the loggers write to stderr.

    Args:
        log_file: Path to the log file, or an empty string.

    Yields:
        The open file, or None when no file is configured.
    """
    if not log_file:
        yield None
        return

    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    with log_path.open("a") as handle:
        yield handle


def create_logger(
    level: str | None = None,
    *,
    log_format: LogFormatType = "json",
    stream: TextIO | None = None,
) -> "FilteringBoundLogger":  # noqa: UP037
    """Create a standalone structlog logger.

    Output goes to ``stream``, or to stderr when no stream is given.

    The log level is determined by (in order of precedence):
    1. DECKSTORE_DEBUG environment variable (if set, enables DEBUG level)
    2. The `level` parameter (if provided)
    3. DECKSTORE_LOG_LEVEL environment variable
    4. Default: INFO

    Args:
        level: Optional log level string (debug, info, warning, error).
        log_format: Output format, either "json" or "text".
        stream: Text stream to write to.

    Returns:
        A configured FilteringBoundLogger instance.
    """
    if level is not None:
        effective_level = _log_level_from_string(level, respect_env=True)
    else:
        effective_level = _get_log_level()

    output = stream if stream is not None else sys.stderr

    processors: list[structlog.typing.Processor] = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if log_format == "json":
        # Add dict_tracebacks for structured exception logging in JSON
        processors.append(structlog.processors.dict_tracebacks)
        processors.append(structlog.processors.JSONRenderer())
    else:
        # Text format: "timestamp [level] event key=value ..."
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    return cast(
        "FilteringBoundLogger",
        structlog.wrap_logger(
            structlog.WriteLoggerFactory(file=output)(),
            processors=processors,
            wrapper_class=structlog.make_filtering_bound_logger(effective_level),
            context_class=dict,
        ),
    )


def create_logger_from_config(
    config: "LoggingConfig",  # noqa: UP037
    *,
    stream: TextIO | None = None,
    **bindings: object,
) -> "FilteringBoundLogger":  # noqa: UP037
    """Create a logger from the logging configuration section.

    The configured file is not opened here; pass the handle yielded by
    ``open_log_stream(config.file)`` as ``stream``.

    Args:
        config: The logging configuration.
        stream: Text stream to write to. Defaults to stderr.
        **bindings: Context values bound to every log entry.

    Returns:
        A FilteringBoundLogger instance.
    """
    logger = create_logger(
        config.level.value,
        log_format="json" if config.format.value == "json" else "text",
        stream=stream,
    )
    if bindings:
        return logger.bind(**bindings)
    return logger
