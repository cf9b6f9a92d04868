# ruff: noqa: D415
"""Configuration display command."""

from deckstore.cli._context import CLIContext
from deckstore.cli._shared import format_json


def config() -> None:
    """Print the effective configuration as JSON

    Shows the result of merging built-in defaults, the config file and
    DECKSTORE_* environment variables.
    """
    ctx = CLIContext.get_current()
    ctx.console.out(format_json(ctx.config.model_dump(mode="json")))
