"""Shared test fixtures for deckstore tests."""

from collections.abc import Callable
from typing import TYPE_CHECKING

import pytest
from rich.console import Console

from deckstore.blob import MemoryBlobStore
from deckstore.config import RetryConfiguration
from deckstore.occ import DocumentUpdater
from deckstore.repository import StudyRepository

if TYPE_CHECKING:
    from pendulum import DateTime

FreezeTimeFunc = Callable[..., "DateTime"]


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def console() -> Console:
    return Console(
        width=70,
        force_terminal=True,
        highlight=False,
        color_system=None,
        legacy_windows=False,
    )


@pytest.fixture
def freeze_time(monkeypatch: pytest.MonkeyPatch) -> FreezeTimeFunc:
    """Return a function to freeze pendulum.now() to a fixed time."""
    import pendulum

    real_now = pendulum.now

    def _freeze(
        year: int,
        month: int,
        day: int,
        hour: int = 0,
        minute: int = 0,
        second: int = 0,
    ) -> "DateTime":  # noqa: UP037
        fixed = pendulum.datetime(year, month, day, hour, minute, second, tz="UTC")

        def mock_now(tz: str) -> "DateTime":  # noqa: UP037
            return fixed if tz == "UTC" else real_now(tz)

        monkeypatch.setattr("pendulum.now", mock_now)
        return fixed

    return _freeze


@pytest.fixture
def store() -> MemoryBlobStore:
    return MemoryBlobStore()


@pytest.fixture
def retry() -> RetryConfiguration:
    """Retry policy with the default attempt budget and no waiting."""
    return RetryConfiguration(max_attempts=8, base_delay=0.0, max_delay=0.0)


@pytest.fixture
def updater(store: MemoryBlobStore, retry: RetryConfiguration) -> DocumentUpdater:
    return DocumentUpdater(store, retry)


@pytest.fixture
def repository(
    store: MemoryBlobStore, updater: DocumentUpdater
) -> StudyRepository:
    return StudyRepository(store, updater=updater, max_concurrent_writes=4)
