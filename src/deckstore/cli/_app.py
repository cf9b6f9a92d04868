"""The command-line interface for deckstore."""
# ruff: noqa: TC003  # Path needed at runtime for cyclopts parameter parsing

from pathlib import Path
from typing import TYPE_CHECKING, Annotated

from cyclopts import App, Parameter
from rich.console import Console

from deckstore.config import load_config
from deckstore.exceptions import ConfigError
from deckstore.utils import create_logger_from_config, open_log_stream

from ._commands import register_commands
from ._context import CLIContext
from ._shared import fail

if TYPE_CHECKING:
    from deckstore.blob import BlobStore

_HELP = "Inspect and repair a deckstore document store."


def create_app(
    console: Console | None = None,
    error_console: Console | None = None,
    *,
    exit_on_error: bool = True,
    store: "BlobStore | None" = None,  # noqa: UP037
) -> App:
    """Create the CLI application.

    Args:
        console: Console for regular output.
        error_console: Console for errors.
        exit_on_error: Exit on argument parsing errors.
        store: Store used by every command instead of the configured backend.

    Returns:
        The cyclopts application. Invoke ``app.meta`` to parse global options.
    """
    if console is None:
        console = Console()
    if error_console is None:
        error_console = Console(stderr=True)
    app = App(
        name="deckstore",
        help=_HELP,
        help_on_error=True,
        console=console,
        error_console=error_console,
        exit_on_error=exit_on_error,
    )

    @app.meta.default
    def _default(  # pyright: ignore[reportUnusedFunction]
        *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
        config: Annotated[
            Path | None, Parameter(name="--config", help="Path to config file")
        ] = None,
    ) -> None:
        """Launch the deckstore CLI with global options.

        Args:
            tokens: Command tokens to pass to subcommands.
            config: Explicit path to a TOML config file.
        """
        try:
            loaded_config = load_config(config)
        except ConfigError as e:
            fail(e, console=error_console)

        with open_log_stream(loaded_config.logging.file) as log_stream:
            logger = create_logger_from_config(
                loaded_config.logging, stream=log_stream, component="cli"
            )
            ctx = CLIContext(
                config=loaded_config,
                config_path=config,
                console=console,
                error_console=error_console,
                logger=logger,
                store=store,
            )
            CLIContext.set_current(ctx)

            try:
                app(tokens)
            finally:
                CLIContext.reset()

    register_commands(app)
    return app


app = create_app()


def main() -> None:
    """Default entrypoint for the `deckstore` CLI."""
    create_app().meta()


if __name__ == "__main__":
    main()
