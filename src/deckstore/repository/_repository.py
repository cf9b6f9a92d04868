"""Study repository facade.

StudyRepository wires the entity managers to one blob store and one
DocumentUpdater so that every collection count change in the process goes
through the same retry policy.
"""

from types import TracebackType
from typing import TYPE_CHECKING, Self, final

import anyio

from deckstore.blob import HttpBlobStore, create_blob_store
from deckstore.occ import DocumentUpdater

from ._collections import CollectionManager
from ._goals import GoalManager
from ._items import ItemManager
from ._usage import UsageManager

if TYPE_CHECKING:
    import httpx
    from structlog.typing import FilteringBoundLogger

    from deckstore.blob import BlobStore
    from deckstore.config import DeckstoreConfig, RetryConfiguration


@final
class StudyRepository:
    """Entry point for reading and writing study documents.

    Attributes:
        collections: Collection documents and their item counts.
        items: Item documents.
        goals: Goal documents.
        usage: Per-owner usage aggregates.

    Example:
        >>> repository = StudyRepository(MemoryBlobStore())
        >>> deck = await repository.collections.create("user-1", "Biology")
        >>> await repository.items.create("user-1", deck.id, "Q", "A")
    """

    __slots__ = (
        "_owns_store",
        "_store",
        "_updater",
        "collections",
        "goals",
        "items",
        "usage",
    )

    def __init__(  # noqa: PLR0913
        self,
        store: "BlobStore",  # noqa: UP037
        *,
        retry: "RetryConfiguration | None" = None,  # noqa: UP037
        max_concurrent_writes: int = 16,
        logger: "FilteringBoundLogger | None" = None,  # noqa: UP037
        updater: DocumentUpdater | None = None,
        owns_store: bool = False,
    ) -> None:
        """Initialize the repository.

        Args:
            store: Blob store holding the documents.
            retry: Retry policy for optimistic updates.
            max_concurrent_writes: Bound on parallel store calls during
                batch inserts and listings.
            logger: Optional logger shared by all managers.
            updater: Pre-built updater; one is created from ``retry`` if None.
            owns_store: Close the store in ``aclose``.
        """
        self._store = store
        self._owns_store = owns_store
        self._updater = updater or DocumentUpdater(store, retry, logger=logger)
        limiter = anyio.CapacityLimiter(max_concurrent_writes)

        self.collections = CollectionManager(
            store, self._updater, limiter=limiter, logger=logger
        )
        self.items = ItemManager(
            store, self.collections, limiter=limiter, logger=logger
        )
        self.goals = GoalManager(store, limiter=limiter, logger=logger)
        self.usage = UsageManager(store, logger=logger)

    @classmethod
    def from_config(
        cls,
        config: "DeckstoreConfig",  # noqa: UP037
        *,
        store: "BlobStore | None" = None,  # noqa: UP037
        auth: "httpx.Auth | None" = None,  # noqa: UP037
        logger: "FilteringBoundLogger | None" = None,  # noqa: UP037
    ) -> Self:
        """Create a repository from configuration.

        Args:
            config: The full deckstore configuration.
            store: Store to use instead of the configured backend.
            auth: Request signer for the http backend.
            logger: Optional logger.

        Returns:
            A repository that closes the store it created.
        """
        owns_store = store is None
        if store is None:
            store = create_blob_store(config.store, auth=auth, logger=logger)
        return cls(
            store,
            retry=config.retry,
            max_concurrent_writes=config.store.max_concurrent_writes,
            logger=logger,
            owns_store=owns_store,
        )

    @property
    def store(self) -> "BlobStore":  # noqa: UP037
        """Return the underlying blob store."""
        return self._store

    @property
    def updater(self) -> DocumentUpdater:
        """Return the optimistic updater shared by the managers."""
        return self._updater

    async def __aenter__(self) -> Self:
        """Enter async context manager.

        Returns:
            Self for use in async with statement.
        """
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit async context manager, closing an owned store."""
        await self.aclose()

    async def aclose(self) -> None:
        """Release the store's connections if this repository owns it."""
        if self._owns_store and isinstance(self._store, HttpBlobStore):
            await self._store.aclose()
