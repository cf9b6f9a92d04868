"""Utilities used by the deckstore CLI."""

from ._app import app, create_app, main
from ._context import CLIContext, OutputFormat
from ._shared import ExitCode

__all__ = ["CLIContext", "ExitCode", "OutputFormat", "app", "create_app", "main"]
