"""Collection manager.

Collections carry the one derived value in the store, ``item_count``. Every
change to it goes through the DocumentUpdater so that concurrent writers
never overwrite each other's increments.
"""

from typing import TYPE_CHECKING, Any, Final

import anyio

from deckstore.documents import (
    Collection,
    collection_key,
    collections_prefix,
    items_prefix,
    new_document_id,
)
from deckstore.utils import utc_now

from ._storage import (
    check_fields,
    load_document,
    load_prefix,
    merge_fields,
    require_text,
    save_document,
)

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from deckstore.blob import BlobStore
    from deckstore.occ import DocumentUpdater

__all__ = ["CollectionManager"]

_UPDATABLE_FIELDS: Final = frozenset({"name", "description"})


class CollectionManager:
    """Manager for collection documents.

    Attributes:
        _store: Blob store holding the documents.
        _updater: Optimistic updater for item_count changes.
        _limiter: Bounds concurrent reads when listing.
        _logger: Optional logger.
    """

    __slots__: Final = ("_limiter", "_logger", "_store", "_updater")

    def __init__(
        self,
        store: "BlobStore",  # noqa: UP037
        updater: "DocumentUpdater",  # noqa: UP037
        *,
        limiter: anyio.CapacityLimiter | None = None,
        logger: "FilteringBoundLogger | None" = None,  # noqa: UP037
    ) -> None:
        """Initialize the collection manager.

        Args:
            store: Blob store holding the documents.
            updater: Updater used for every item_count change.
            limiter: Bounds concurrent reads when listing. A limiter of 16
                is created if None.
            logger: Optional logger.
        """
        self._store = store
        self._updater = updater
        self._limiter = limiter or anyio.CapacityLimiter(16)
        self._logger = logger

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def get(self, owner_id: str, collection_id: str) -> Collection:
        """Get a collection by ID.

        Raises:
            DocumentNotFoundError: If the collection does not exist.
        """
        return await load_document(
            self._store, collection_key(owner_id, collection_id), Collection
        )

    async def list(self, owner_id: str) -> list[Collection]:
        """List an owner's collections, newest first."""
        collections = await load_prefix(
            self._store, collections_prefix(owner_id), Collection, self._limiter
        )
        return sorted(collections, key=lambda c: c.created_at, reverse=True)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def create(
        self,
        owner_id: str,
        name: str,
        description: str = "",
    ) -> Collection:
        """Create an empty collection.

        Args:
            owner_id: Identifier of the owning user.
            name: Display name; surrounding whitespace is stripped.
            description: Optional description.

        Returns:
            The stored collection, with an item_count of 0.

        Raises:
            InvalidInputError: If owner_id or name is blank.
        """
        now = utc_now()
        collection = Collection(
            id=new_document_id(),
            owner_id=require_text(owner_id, "owner_id"),
            name=require_text(name, "name"),
            description=description.strip(),
            item_count=0,
            created_at=now,
            updated_at=now,
        )
        key = collection_key(collection.owner_id, collection.id)
        _ = await save_document(self._store, key, collection)

        if self._logger:
            self._logger.info("collection_created", key=key)
        return collection

    async def update(
        self,
        owner_id: str,
        collection_id: str,
        **fields: Any,  # pyright: ignore[reportExplicitAny]
    ) -> Collection:
        """Update a collection's name and/or description.

        The change is applied optimistically, so it never clobbers a
        concurrent item_count change.

        Args:
            owner_id: Identifier of the owning user.
            collection_id: The collection to update.
            **fields: New values for ``name`` and/or ``description``.

        Returns:
            The updated collection.

        Raises:
            InvalidInputError: If a field is protected, unknown, or invalid.
            DocumentNotFoundError: If the collection does not exist.
            ConcurrencyExhaustedError: If every attempt lost its race.
        """
        check_fields(fields, _UPDATABLE_FIELDS)
        if "name" in fields:
            fields["name"] = require_text(fields["name"], "name")

        return await self._updater.update(
            collection_key(owner_id, collection_id),
            Collection,
            lambda current: merge_fields(current, fields, _UPDATABLE_FIELDS),
        )

    async def adjust_count(
        self,
        owner_id: str,
        collection_id: str,
        delta: int,
    ) -> Collection:
        """Add ``delta`` to a collection's item_count, never going below 0.

        Raises:
            DocumentNotFoundError: If the collection does not exist.
            ConcurrencyExhaustedError: If every attempt lost its race.
        """

        def _apply(current: Collection) -> Collection:
            count = max(0, current.item_count + delta)
            return current.model_copy(update={"item_count": count})

        return await self._updater.update(
            collection_key(owner_id, collection_id), Collection, _apply
        )

    async def recount(self, owner_id: str, collection_id: str) -> Collection:
        """Reset item_count to the number of item documents actually stored.

        Repairs drift left behind by a crash between an item write and the
        matching count update.

        Raises:
            DocumentNotFoundError: If the collection does not exist.
            ConcurrencyExhaustedError: If every attempt lost its race.
        """
        keys = await self._store.list_prefix(items_prefix(owner_id, collection_id))
        count = len(keys)

        updated = await self._updater.update(
            collection_key(owner_id, collection_id),
            Collection,
            lambda current: current.model_copy(update={"item_count": count}),
        )
        if self._logger:
            self._logger.info(
                "collection_recounted",
                owner_id=owner_id,
                collection_id=collection_id,
                item_count=count,
            )
        return updated

    async def delete(self, owner_id: str, collection_id: str) -> int:
        """Delete a collection and every item stored under it.

        The collection document goes first, then items one at a time. A
        failure part-way leaves the remaining items behind and propagates;
        calling delete again removes them. Deleting a collection that does
        not exist still sweeps its item prefix.

        Returns:
            The number of item documents deleted.

        Raises:
            TransientIOError: If the store fails part-way.
        """
        await self._store.delete(collection_key(owner_id, collection_id))

        keys = await self._store.list_prefix(items_prefix(owner_id, collection_id))
        deleted = 0
        try:
            for key in keys:
                await self._store.delete(key)
                deleted += 1
        except Exception:
            if self._logger:
                self._logger.exception(
                    "collection_delete_incomplete",
                    owner_id=owner_id,
                    collection_id=collection_id,
                    deleted=deleted,
                    remaining=len(keys) - deleted,
                )
            raise

        if self._logger:
            self._logger.info(
                "collection_deleted",
                owner_id=owner_id,
                collection_id=collection_id,
                items_deleted=deleted,
            )
        return deleted
