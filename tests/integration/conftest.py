from collections.abc import Callable
from pathlib import Path

import pytest
from rich.console import Console

from deckstore.blob import MemoryBlobStore
from deckstore.cli import create_app


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if Path(item.path).is_relative_to(Path(__file__).parent):
            item.add_marker(pytest.mark.integration)


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's deckstore settings out of the tests."""
    for name in ("DECKSTORE_CONFIG", "DECKSTORE_DEBUG", "DECKSTORE_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def deckstore_cli(
    console: Console, store: MemoryBlobStore
) -> Callable[..., None]:
    """Create CLI app for testing.

    Returns a callable that runs the CLI against the shared in-memory store
    and suppresses SystemExit. Use deckstore_cli_with_exit_code when you
    need to check the exit code.
    """
    app = create_app(console=console, error_console=console, store=store)

    def _run(*args: str) -> None:
        try:
            app.meta(list(args))
        except SystemExit:
            pass

    return _run


@pytest.fixture
def deckstore_cli_with_exit_code(
    console: Console, store: MemoryBlobStore
) -> Callable[..., int]:
    """Create CLI app for testing that returns the exit code.

    Use this fixture when tests need to verify the exit code.
    """
    app = create_app(console=console, error_console=console, store=store)

    def _run(*args: str) -> int:
        """Run CLI app and return exit code (0 if no SystemExit)."""
        try:
            app.meta(list(args))
        except SystemExit as e:
            return e.code if isinstance(e.code, int) else 1
        else:
            return 0

    return _run
