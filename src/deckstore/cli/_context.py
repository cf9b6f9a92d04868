# pyright: reportUnusedCallResult=false
"""CLI context for global state management.

The CLIContext is set once by the global option handler and made available
to every command via contextvars.
"""

import contextvars
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path  # noqa: TC003
from typing import TYPE_CHECKING, Self

from rich.console import Console

from deckstore.config import DeckstoreConfig

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from deckstore.blob import BlobStore


class OutputFormat(StrEnum):
    """Supported output formats for commands."""

    TABLE = "table"
    JSON = "json"


_current_cli_context: "contextvars.ContextVar[CLIContext | None]" = (  # noqa: UP037
    contextvars.ContextVar("cli_context", default=None)
)


@dataclass(frozen=True, slots=True)
class CLIContext:
    """Global CLI context with configuration and output consoles.

    Attributes:
        config: Loaded configuration.
        config_path: Explicit config file passed with --config.
        console: Console for regular output.
        error_console: Console for error output.
        logger: Structured logger for store activity.
        store: Store to use instead of the configured backend.
    """

    config: DeckstoreConfig = field(repr=False)
    config_path: Path | None = None
    console: Console = field(default_factory=Console, repr=False)
    error_console: Console = field(
        default_factory=lambda: Console(stderr=True), repr=False
    )
    logger: "FilteringBoundLogger | None" = field(default=None, repr=False)  # noqa: UP037
    store: "BlobStore | None" = field(default=None, repr=False)  # noqa: UP037

    @classmethod
    def get_current(cls) -> Self:
        """Get the active CLIContext, or a default one if none is set."""
        ctx = _current_cli_context.get()
        if ctx is not None:
            return ctx
        return cls(config=DeckstoreConfig())

    @classmethod
    def set_current(cls, ctx: "CLIContext") -> None:  # noqa: UP037
        """Set the active CLIContext."""
        _current_cli_context.set(ctx)

    @classmethod
    def reset(cls) -> None:
        """Reset to the default context."""
        _current_cli_context.set(None)
