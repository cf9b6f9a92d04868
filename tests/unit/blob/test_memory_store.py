import pytest

from deckstore.blob import BlobStore, MemoryBlobStore
from deckstore.exceptions import BlobNotFoundError, ConflictError

pytestmark = pytest.mark.anyio


class TestProtocol:
    def test_satisfies_blob_store_protocol(self) -> None:
        assert isinstance(MemoryBlobStore(), BlobStore)


class TestGetPut:
    async def test_get_missing_key_raises_not_found(
        self, store: MemoryBlobStore
    ) -> None:
        with pytest.raises(BlobNotFoundError) as exc_info:
            await store.get("missing.json")

        assert exc_info.value.key == "missing.json"

    async def test_put_then_get_returns_data_and_version(
        self, store: MemoryBlobStore
    ) -> None:
        version = await store.put("a.json", b'{"x":1}')

        blob = await store.get("a.json")

        assert blob.data == b'{"x":1}'
        assert blob.version == version

    async def test_rewriting_identical_bytes_changes_version(
        self, store: MemoryBlobStore
    ) -> None:
        first = await store.put("a.json", b"same")
        second = await store.put("a.json", b"same")

        assert first != second

    async def test_conditional_put_with_current_version_succeeds(
        self, store: MemoryBlobStore
    ) -> None:
        version = await store.put("a.json", b"v1")

        new_version = await store.put("a.json", b"v2", expected_version=version)

        blob = await store.get("a.json")
        assert blob.data == b"v2"
        assert blob.version == new_version

    async def test_conditional_put_with_stale_version_conflicts(
        self, store: MemoryBlobStore
    ) -> None:
        stale = await store.put("a.json", b"v1")
        _ = await store.put("a.json", b"v2")

        with pytest.raises(ConflictError) as exc_info:
            await store.put("a.json", b"v3", expected_version=stale)

        assert exc_info.value.expected_version == stale
        assert exc_info.value.maybe_applied is False
        assert (await store.get("a.json")).data == b"v2"

    async def test_conditional_put_on_absent_key_conflicts(
        self, store: MemoryBlobStore
    ) -> None:
        with pytest.raises(ConflictError):
            await store.put("a.json", b"v1", expected_version="1-abc")

        assert "a.json" not in store


class TestDeleteAndList:
    async def test_delete_removes_object(self, store: MemoryBlobStore) -> None:
        _ = await store.put("a.json", b"x")

        await store.delete("a.json")

        assert "a.json" not in store
        assert len(store) == 0

    async def test_delete_absent_key_is_not_an_error(
        self, store: MemoryBlobStore
    ) -> None:
        await store.delete("never-written.json")

    async def test_list_prefix_returns_only_matching_keys(
        self, store: MemoryBlobStore
    ) -> None:
        for key in ("items/u/c1/a.json", "items/u/c1/b.json", "items/u/c2/c.json"):
            _ = await store.put(key, b"{}")

        keys = await store.list_prefix("items/u/c1/")

        assert sorted(keys) == ["items/u/c1/a.json", "items/u/c1/b.json"]

    async def test_list_prefix_with_no_matches_is_empty(
        self, store: MemoryBlobStore
    ) -> None:
        assert await store.list_prefix("goals/nobody/") == []


# =============================================================================
# Contention Simulation
# =============================================================================


class TestForcedConflicts:
    async def test_forced_conflict_rejects_current_version(
        self, store: MemoryBlobStore
    ) -> None:
        version = await store.put("a.json", b"v1")
        store.force_conflicts("a.json", 1)

        with pytest.raises(ConflictError):
            await store.put("a.json", b"v2", expected_version=version)

        blob = await store.get("a.json")
        assert blob.data == b"v1"
        assert blob.version != version

    async def test_forced_conflicts_are_consumed(
        self, store: MemoryBlobStore
    ) -> None:
        _ = await store.put("a.json", b"v1")
        store.force_conflicts("a.json", 1)

        with pytest.raises(ConflictError):
            await store.put(
                "a.json", b"v2", expected_version=(await store.get("a.json")).version
            )
        _ = await store.put(
            "a.json", b"v2", expected_version=(await store.get("a.json")).version
        )

        assert (await store.get("a.json")).data == b"v2"

    async def test_unconditional_puts_ignore_forced_conflicts(
        self, store: MemoryBlobStore
    ) -> None:
        store.force_conflicts("a.json", 3)

        _ = await store.put("a.json", b"v1")

        assert (await store.get("a.json")).data == b"v1"


class TestLostAcknowledgements:
    async def test_write_lands_but_reports_maybe_applied_conflict(
        self, store: MemoryBlobStore
    ) -> None:
        version = await store.put("a.json", b"v1")
        store.lose_acknowledgements("a.json", 1)

        with pytest.raises(ConflictError) as exc_info:
            await store.put("a.json", b"v2", expected_version=version)

        assert exc_info.value.maybe_applied is True
        assert (await store.get("a.json")).data == b"v2"


class TestCallLog:
    async def test_records_calls_in_order(self, store: MemoryBlobStore) -> None:
        version = await store.put("a.json", b"v1")
        _ = await store.get("a.json")
        _ = await store.put("a.json", b"v2", expected_version=version)
        _ = await store.list_prefix("a")
        await store.delete("a.json")

        assert [call.operation for call in store.calls] == [
            "put",
            "get",
            "put",
            "list",
            "delete",
        ]
        assert store.calls[2].expected_version == version

    async def test_calls_for_filters_by_operation_and_key(
        self, store: MemoryBlobStore
    ) -> None:
        _ = await store.put("a.json", b"1")
        _ = await store.put("b.json", b"2")
        _ = await store.get("a.json")

        assert len(store.calls_for("put")) == 2
        assert len(store.calls_for("put", "a.json")) == 1
        assert store.calls_for("delete") == []
