# pyright: reportExplicitAny=false
"""Shared CLI utilities for commands.

This module provides common utilities used across CLI command implementations:
- Standardized exit codes
- JSON output formatting
- Mapping of library errors to exit codes
"""

from enum import IntEnum
from typing import Any, Never

import orjson
from rich.console import Console  # noqa: TC002

from deckstore.exceptions import (
    BlobStoreError,
    ConcurrencyExhaustedError,
    ConfigLoadError,
    ConfigValidationError,
    DeckstoreError,
    DocumentNotFoundError,
    InvalidInputError,
)

FormattableData = dict[str, Any] | list[dict[str, Any]]

__all__ = [
    "ExitCode",
    "FormattableData",
    "exit_code_for",
    "exit_with_error",
    "fail",
    "format_json",
]


class ExitCode(IntEnum):
    """Standard exit codes for deckstore CLI commands."""

    SUCCESS = 0
    LOAD_ERROR = 1
    VALIDATION_ERROR = 2
    NOT_FOUND = 3
    IO_ERROR = 4
    INTERNAL_ERROR = 5


def format_json(data: FormattableData, *, indent: bool = True) -> str:
    """Format data as JSON.

    Args:
        data: Data to format as JSON.
        indent: Whether to pretty-print with indentation.

    Returns:
        JSON-formatted string representation.
    """
    options = orjson.OPT_SORT_KEYS
    if indent:
        options |= orjson.OPT_INDENT_2
    return orjson.dumps(data, option=options).decode("utf-8")


def exit_code_for(error: DeckstoreError) -> ExitCode:
    """Return the exit code that reports a library error."""
    match error:
        case ConfigLoadError():
            return ExitCode.LOAD_ERROR
        case ConfigValidationError() | InvalidInputError():
            return ExitCode.VALIDATION_ERROR
        case DocumentNotFoundError():
            return ExitCode.NOT_FOUND
        case BlobStoreError() | ConcurrencyExhaustedError():
            return ExitCode.IO_ERROR
        case _:
            return ExitCode.INTERNAL_ERROR


def exit_with_error(
    message: str,
    code: ExitCode = ExitCode.INTERNAL_ERROR,
    *,
    console: Console,
) -> Never:
    """Print an error message and exit with the specified code.

    Raises:
        SystemExit: Always raised with the specified exit code.
    """
    console.print(f"[red]Error:[/red] {message}")
    raise SystemExit(code)


def fail(error: DeckstoreError, *, console: Console) -> Never:
    """Report a library error and exit with its mapped code.

    Raises:
        SystemExit: Always raised.
    """
    exit_with_error(str(error), exit_code_for(error), console=console)
