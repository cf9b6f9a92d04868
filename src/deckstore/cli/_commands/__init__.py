"""Deckstore CLI commands."""
# pyright: reportUnusedCallResult=false

from typing import TYPE_CHECKING

from ._config import config
from ._documents import collections, items, recount

if TYPE_CHECKING:
    from cyclopts import App

__all__ = ["register_commands"]


def register_commands(app: "App") -> None:  # noqa: UP037
    """Register all commands with the application."""
    app.command(collections)
    app.command(items)
    app.command(recount)
    app.command(config)
