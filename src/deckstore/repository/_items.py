"""Item manager.

Items are written directly to the store; only the owning collection's
``item_count`` is contended, and it is changed through the collection
manager's optimistic updates.

When the count update fails after items were written, the items are
deleted again before the error propagates, so a failed call leaves neither
new items nor a changed count behind. If the count update may have landed
anyway, the items are kept and a later recount settles the difference.
"""

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any, ClassVar, Final, Self

import anyio
from pydantic import BaseModel, ConfigDict, ValidationError

from deckstore.documents import (
    Difficulty,
    Item,
    item_key,
    items_prefix,
    key_segment,
    new_document_id,
)
from deckstore.exceptions import (
    ConcurrencyExhaustedError,
    InvalidInputError,
    TransientIOError,
)
from deckstore.utils import utc_now

from ._storage import (
    check_fields,
    first_exception,
    load_document,
    load_prefix,
    merge_fields,
    require_text,
    save_document,
)

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from deckstore.blob import BlobStore

    from ._collections import CollectionManager

__all__ = ["ItemDraft", "ItemManager"]

_UPDATABLE_FIELDS: Final = frozenset({"question", "answer", "difficulty"})


def _count_outcome_unknown(error: Exception) -> bool:
    match error:
        case ConcurrencyExhaustedError():
            return error.outcome_unknown
        case TransientIOError():
            return error.maybe_applied
        case _:
            return False


class ItemDraft(BaseModel):
    """Content for an item that has not been stored yet.

    Attributes:
        question: Prompt text.
        answer: Answer text.
        difficulty: Difficulty tag.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    question: str
    answer: str
    difficulty: Difficulty = Difficulty.MEDIUM

    def validated(self) -> Self:
        """Return a copy with stripped text, rejecting blank question or answer.

        Raises:
            InvalidInputError: If the question or answer is blank.
        """
        return self.model_copy(
            update={
                "question": require_text(self.question, "question"),
                "answer": require_text(self.answer, "answer"),
            }
        )


def _coerce_draft(
    entry: ItemDraft | Mapping[str, Any],  # pyright: ignore[reportExplicitAny]
    index: int,
) -> ItemDraft:
    if isinstance(entry, ItemDraft):
        draft = entry
    else:
        try:
            draft = ItemDraft.model_validate(entry)
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first["loc"])
            msg = f"Item {index}: invalid '{field}': {first['msg']}"
            raise InvalidInputError(msg, field=field) from e

    try:
        return draft.validated()
    except InvalidInputError as e:
        msg = f"Item {index}: {e}"
        raise InvalidInputError(msg, field=e.field) from e


class ItemManager:
    """Manager for item documents.

    Attributes:
        _store: Blob store holding the documents.
        _collections: Manager owning the item_count of each collection.
        _limiter: Bounds concurrent writes during batch inserts.
        _logger: Optional logger.
    """

    __slots__: Final = ("_collections", "_limiter", "_logger", "_store")

    def __init__(
        self,
        store: "BlobStore",  # noqa: UP037
        collections: "CollectionManager",  # noqa: UP037
        *,
        limiter: anyio.CapacityLimiter | None = None,
        logger: "FilteringBoundLogger | None" = None,  # noqa: UP037
    ) -> None:
        """Initialize the item manager.

        Args:
            store: Blob store holding the documents.
            collections: Manager used to adjust item counts.
            limiter: Bounds concurrent writes during batch inserts. A
                limiter of 16 is created if None.
            logger: Optional logger.
        """
        self._store = store
        self._collections = collections
        self._limiter = limiter or anyio.CapacityLimiter(16)
        self._logger = logger

    # -------------------------------------------------------------------------
    # Internal Methods - Compensation
    # -------------------------------------------------------------------------

    async def _compensate(self, keys: Iterable[str], error: BaseException) -> None:
        """Delete items whose count update failed.

        A failure here is logged and otherwise ignored so that the caller
        still sees the original error. The items left behind are picked up
        by a later recount.
        """
        keys = list(keys)
        if self._logger:
            self._logger.warning(
                "item_count_update_failed",
                error=str(error),
                error_type=type(error).__name__,
                compensating=len(keys),
            )
        for key in keys:
            try:
                await self._store.delete(key)
            except Exception as e:  # noqa: BLE001
                if self._logger:
                    self._logger.error(  # noqa: TRY400
                        "item_compensation_failed", key=key, error=str(e)
                    )

    async def _write_items(
        self,
        owner_id: str,
        collection_id: str,
        items: Iterable[Item],
        written: list[str],
    ) -> None:
        async def _write(item: Item) -> None:
            key = item_key(owner_id, collection_id, item.id)
            async with self._limiter:
                _ = await save_document(self._store, key, item)
            written.append(key)

        try:
            async with anyio.create_task_group() as tg:
                for item in items:
                    tg.start_soon(_write, item)
        except BaseExceptionGroup as eg:
            raise first_exception(eg) from None

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def create(
        self,
        owner_id: str,
        collection_id: str,
        question: str,
        answer: str,
        difficulty: Difficulty | str = Difficulty.MEDIUM,
    ) -> Item:
        """Create an item and increment its collection's item_count.

        Args:
            owner_id: Identifier of the owning user.
            collection_id: Collection the item belongs to.
            question: Prompt text; surrounding whitespace is stripped.
            answer: Answer text; surrounding whitespace is stripped.
            difficulty: Difficulty tag.

        Returns:
            The stored item.

        Raises:
            InvalidInputError: If an identifier, question or answer is blank,
                or the difficulty is unknown.
            DocumentNotFoundError: If the collection does not exist.
            ConcurrencyExhaustedError: If the count update lost every race.
        """
        items = await self.create_batch(
            owner_id,
            collection_id,
            [{"question": question, "answer": answer, "difficulty": difficulty}],
        )
        return items[0]

    async def create_batch(
        self,
        owner_id: str,
        collection_id: str,
        items: Iterable[ItemDraft | Mapping[str, Any]],  # pyright: ignore[reportExplicitAny]
    ) -> list[Item]:
        """Create many items with a single item_count update.

        Every entry is validated before anything is written. Items are then
        written concurrently, and the collection's count is raised by the
        number of items in one optimistic update. An empty batch does
        nothing.

        Items are deleted again when the call fails, except when the count
        update may have been applied; then they stay for a recount.

        Args:
            owner_id: Identifier of the owning user.
            collection_id: Collection the items belong to.
            items: ItemDraft values or mappings with ``question``,
                ``answer`` and optional ``difficulty``.

        Returns:
            The stored items, in input order.

        Raises:
            InvalidInputError: If any entry is invalid; nothing is written.
            DocumentNotFoundError: If the collection does not exist.
            ConcurrencyExhaustedError: If the count update lost every race.
            TransientIOError: If the store fails.
        """
        owner_id = key_segment(owner_id, "owner_id")
        collection_id = key_segment(collection_id, "collection_id")
        drafts = [_coerce_draft(entry, index) for index, entry in enumerate(items)]
        if not drafts:
            return []

        now = utc_now()
        created = [
            Item(
                id=new_document_id(),
                owner_id=owner_id,
                collection_id=collection_id,
                question=draft.question,
                answer=draft.answer,
                difficulty=draft.difficulty,
                created_at=now,
                updated_at=now,
            )
            for draft in drafts
        ]

        written: list[str] = []
        try:
            await self._write_items(owner_id, collection_id, created, written)
        except Exception as e:
            await self._compensate(written, e)
            raise

        try:
            _ = await self._collections.adjust_count(
                owner_id, collection_id, len(created)
            )
        except Exception as e:
            if not _count_outcome_unknown(e):
                await self._compensate(written, e)
            elif self._logger:
                self._logger.warning(
                    "item_count_outcome_unknown",
                    owner_id=owner_id,
                    collection_id=collection_id,
                    kept=len(written),
                    error=str(e),
                )
            raise

        if self._logger:
            self._logger.info(
                "items_created",
                owner_id=owner_id,
                collection_id=collection_id,
                count=len(created),
            )
        return created

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def get(self, owner_id: str, collection_id: str, item_id: str) -> Item:
        """Get an item by ID.

        Raises:
            DocumentNotFoundError: If the item does not exist.
        """
        return await load_document(
            self._store, item_key(owner_id, collection_id, item_id), Item
        )

    async def list(self, owner_id: str, collection_id: str) -> list[Item]:
        """List a collection's items, newest first."""
        items = await load_prefix(
            self._store, items_prefix(owner_id, collection_id), Item, self._limiter
        )
        return sorted(items, key=lambda i: i.created_at, reverse=True)

    # -------------------------------------------------------------------------
    # Mutations (continued)
    # -------------------------------------------------------------------------

    async def update(
        self,
        owner_id: str,
        collection_id: str,
        item_id: str,
        **fields: Any,  # pyright: ignore[reportExplicitAny]
    ) -> Item:
        """Update an item's question, answer or difficulty.

        Items have no derived state, so this is a plain last-write-wins
        write with no effect on the collection's count.

        Raises:
            InvalidInputError: If a field is protected, unknown, or invalid.
            DocumentNotFoundError: If the item does not exist.
        """
        check_fields(fields, _UPDATABLE_FIELDS)
        for name in ("question", "answer"):
            if name in fields:
                fields[name] = require_text(fields[name], name)

        item = await self.get(owner_id, collection_id, item_id)
        updated = merge_fields(item, fields, _UPDATABLE_FIELDS).touched(utc_now())
        _ = await save_document(
            self._store, item_key(owner_id, collection_id, item_id), updated
        )
        return updated

    async def delete(self, owner_id: str, collection_id: str, item_id: str) -> None:
        """Delete an item and decrement its collection's item_count.

        The count never drops below zero.

        Raises:
            DocumentNotFoundError: If the item does not exist. The count is
                left unchanged.
            ConcurrencyExhaustedError: If the count update lost every race.
                The item is already gone; recount repairs the count.
        """
        key = item_key(owner_id, collection_id, item_id)
        _ = await load_document(self._store, key, Item)
        await self._store.delete(key)

        try:
            _ = await self._collections.adjust_count(owner_id, collection_id, -1)
        except Exception:
            if self._logger:
                self._logger.exception(
                    "item_count_decrement_failed",
                    owner_id=owner_id,
                    collection_id=collection_id,
                    item_id=item_id,
                )
            raise

        if self._logger:
            self._logger.info("item_deleted", key=key)
