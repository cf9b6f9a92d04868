from collections.abc import Callable

import pendulum
import pytest
from pendulum import DateTime

from deckstore.blob import MemoryBlobStore
from deckstore.documents import (
    Item,
    collection_key,
    encode_document,
    item_key,
    items_prefix,
)
from deckstore.exceptions import (
    ConcurrencyExhaustedError,
    DocumentNotFoundError,
    InvalidInputError,
    TransientIOError,
)
from deckstore.repository import StudyRepository

pytestmark = pytest.mark.anyio

OWNER = "user-1"


async def _write_orphan_item(
    store: MemoryBlobStore, collection_id: str, item_id: str
) -> None:
    """Store an item without touching the collection's count."""
    now = pendulum.datetime(2024, 1, 1, tz="UTC")
    item = Item(
        id=item_id,
        owner_id=OWNER,
        collection_id=collection_id,
        question="Q",
        answer="A",
        created_at=now,
        updated_at=now,
    )
    _ = await store.put(
        item_key(OWNER, collection_id, item_id), encode_document(item)
    )


class TestCreate:
    async def test_creates_empty_collection(
        self, repository: StudyRepository, store: MemoryBlobStore
    ) -> None:
        collection = await repository.collections.create(
            OWNER, "  Biology  ", "Cells and more"
        )

        assert collection.name == "Biology"
        assert collection.description == "Cells and more"
        assert collection.item_count == 0
        assert collection_key(OWNER, collection.id) in store

    @pytest.mark.parametrize(("owner", "name"), [("", "Deck"), (OWNER, "   ")])
    async def test_rejects_blank_owner_or_name(
        self,
        repository: StudyRepository,
        store: MemoryBlobStore,
        owner: str,
        name: str,
    ) -> None:
        with pytest.raises(InvalidInputError):
            await repository.collections.create(owner, name)

        assert len(store) == 0


class TestQueries:
    async def test_get_returns_stored_collection(
        self, repository: StudyRepository
    ) -> None:
        created = await repository.collections.create(OWNER, "Biology")

        assert await repository.collections.get(OWNER, created.id) == created

    async def test_get_missing_raises_not_found(
        self, repository: StudyRepository
    ) -> None:
        with pytest.raises(DocumentNotFoundError):
            await repository.collections.get(OWNER, "nope")

    async def test_list_is_newest_first(
        self,
        repository: StudyRepository,
        freeze_time: Callable[..., DateTime],
    ) -> None:
        _ = freeze_time(2024, 1, 1)
        older = await repository.collections.create(OWNER, "Older")
        _ = freeze_time(2024, 2, 1)
        newer = await repository.collections.create(OWNER, "Newer")

        listed = await repository.collections.list(OWNER)

        assert [c.id for c in listed] == [newer.id, older.id]

    async def test_list_is_scoped_to_owner(self, repository: StudyRepository) -> None:
        _ = await repository.collections.create(OWNER, "Mine")

        assert await repository.collections.list("someone-else") == []


# =============================================================================
# Updates
# =============================================================================


class TestUpdate:
    async def test_updates_name_and_description(
        self, repository: StudyRepository
    ) -> None:
        created = await repository.collections.create(OWNER, "Biology")

        updated = await repository.collections.update(
            OWNER, created.id, name=" Chemistry ", description="Bonds"
        )

        assert updated.name == "Chemistry"
        assert updated.description == "Bonds"
        assert await repository.collections.get(OWNER, created.id) == updated

    @pytest.mark.parametrize("field", ["item_count", "id", "created_at", "color"])
    async def test_rejects_protected_and_unknown_fields(
        self, repository: StudyRepository, field: str
    ) -> None:
        created = await repository.collections.create(OWNER, "Biology")

        with pytest.raises(InvalidInputError) as exc_info:
            await repository.collections.update(OWNER, created.id, **{field: 99})

        assert exc_info.value.field == field

    async def test_rejects_blank_name(self, repository: StudyRepository) -> None:
        created = await repository.collections.create(OWNER, "Biology")

        with pytest.raises(InvalidInputError):
            await repository.collections.update(OWNER, created.id, name=" ")

    async def test_keeps_item_count(self, repository: StudyRepository) -> None:
        created = await repository.collections.create(OWNER, "Biology")
        _ = await repository.items.create(OWNER, created.id, "Q", "A")

        updated = await repository.collections.update(
            OWNER, created.id, name="Renamed"
        )

        assert updated.item_count == 1

    async def test_missing_collection_raises_not_found(
        self, repository: StudyRepository
    ) -> None:
        with pytest.raises(DocumentNotFoundError):
            await repository.collections.update(OWNER, "nope", name="X")


class TestAdjustCount:
    async def test_adds_delta(self, repository: StudyRepository) -> None:
        created = await repository.collections.create(OWNER, "Biology")

        updated = await repository.collections.adjust_count(OWNER, created.id, 5)

        assert updated.item_count == 5

    async def test_never_goes_below_zero(self, repository: StudyRepository) -> None:
        created = await repository.collections.create(OWNER, "Biology")

        updated = await repository.collections.adjust_count(OWNER, created.id, -3)

        assert updated.item_count == 0

    async def test_exhaustion_leaves_count_unchanged(
        self, repository: StudyRepository, store: MemoryBlobStore
    ) -> None:
        created = await repository.collections.create(OWNER, "Biology")
        store.force_conflicts(collection_key(OWNER, created.id), 8)

        with pytest.raises(ConcurrencyExhaustedError):
            await repository.collections.adjust_count(OWNER, created.id, 1)

        assert (await repository.collections.get(OWNER, created.id)).item_count == 0


class TestRecount:
    async def test_repairs_drift(
        self, repository: StudyRepository, store: MemoryBlobStore
    ) -> None:
        created = await repository.collections.create(OWNER, "Biology")
        await _write_orphan_item(store, created.id, "i1")
        await _write_orphan_item(store, created.id, "i2")

        recounted = await repository.collections.recount(OWNER, created.id)

        assert recounted.item_count == 2
        assert (await repository.collections.get(OWNER, created.id)).item_count == 2

    async def test_lowers_an_inflated_count(
        self, repository: StudyRepository
    ) -> None:
        created = await repository.collections.create(OWNER, "Biology")
        _ = await repository.collections.adjust_count(OWNER, created.id, 4)

        recounted = await repository.collections.recount(OWNER, created.id)

        assert recounted.item_count == 0


# =============================================================================
# Deletion
# =============================================================================


class TestDelete:
    async def test_deletes_collection_and_items(
        self, repository: StudyRepository, store: MemoryBlobStore
    ) -> None:
        created = await repository.collections.create(OWNER, "Biology")
        _ = await repository.items.create_batch(
            OWNER,
            created.id,
            [{"question": f"Q{n}", "answer": f"A{n}"} for n in range(3)],
        )

        deleted = await repository.collections.delete(OWNER, created.id)

        assert deleted == 3
        assert await store.list_prefix(items_prefix(OWNER, created.id)) == []
        with pytest.raises(DocumentNotFoundError):
            await repository.collections.get(OWNER, created.id)

    async def test_is_idempotent(self, repository: StudyRepository) -> None:
        created = await repository.collections.create(OWNER, "Biology")
        _ = await repository.collections.delete(OWNER, created.id)

        assert await repository.collections.delete(OWNER, created.id) == 0

    async def test_partial_failure_propagates_and_retry_finishes(
        self,
        repository: StudyRepository,
        store: MemoryBlobStore,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        created = await repository.collections.create(OWNER, "Biology")
        _ = await repository.items.create_batch(
            OWNER,
            created.id,
            [{"question": f"Q{n}", "answer": f"A{n}"} for n in range(4)],
        )
        real_delete = store.delete
        item_deletes = 0

        async def flaky_delete(key: str) -> None:
            nonlocal item_deletes
            if key.startswith("items/"):
                item_deletes += 1
                if item_deletes == 2:
                    raise TransientIOError("store down", key=key)
            await real_delete(key)

        monkeypatch.setattr(store, "delete", flaky_delete)

        with pytest.raises(TransientIOError):
            await repository.collections.delete(OWNER, created.id)

        assert len(await store.list_prefix(items_prefix(OWNER, created.id))) == 3

        monkeypatch.setattr(store, "delete", real_delete)
        assert await repository.collections.delete(OWNER, created.id) == 3
        assert await store.list_prefix(items_prefix(OWNER, created.id)) == []
