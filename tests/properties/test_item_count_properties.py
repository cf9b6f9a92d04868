"""Property-based tests for collection item counts.

This module uses Hypothesis to check the invariants that tie a collection's
item_count to the item documents stored under it:
- Concurrent creates: N parallel creates leave a count of exactly N
- Failing creates: when some creates give up, the count still equals the
  creates that succeeded and the items actually stored
- Mixed operations: after any mix of batches and deletes the count matches
  the stored items
- Floor: adjusting by arbitrary deltas never drives the count below zero
- Lost acknowledgements: a write reported as failed is never applied twice
- Goal progress: completion is always a whole percentage in [0, 100]
"""

import anyio
from hypothesis import given, settings, strategies as st

from deckstore.blob import MemoryBlobStore
from deckstore.config import RetryConfiguration
from deckstore.documents import Goal, GoalProgress, collection_key, items_prefix
from deckstore.exceptions import ConcurrencyExhaustedError
from deckstore.repository import StudyRepository
from deckstore.utils import utc_now

OWNER = "owner"

# Enough attempts that contention between the writers of one example can
# never exhaust the budget.
_RETRY = RetryConfiguration(max_attempts=64, base_delay=0.0, max_delay=0.0)

# Few enough attempts that contended creates regularly give up.
_TIGHT_RETRY = RetryConfiguration(max_attempts=3, base_delay=0.0, max_delay=0.0)


def _repository() -> tuple[StudyRepository, MemoryBlobStore]:
    store = MemoryBlobStore()
    return StudyRepository(store, retry=_RETRY, max_concurrent_writes=4), store


# =============================================================================
# Strategies
# =============================================================================

batch_sizes = st.integers(min_value=0, max_value=6)

operations = st.lists(
    st.one_of(
        st.tuples(st.just("batch"), batch_sizes),
        st.tuples(st.just("delete"), st.integers(min_value=0, max_value=20)),
    ),
    max_size=12,
)

deltas = st.lists(st.integers(min_value=-10, max_value=10), max_size=20)


# =============================================================================
# Properties
# =============================================================================


@settings(max_examples=40, deadline=None)
@given(count=st.integers(min_value=1, max_value=12))
def test_concurrent_creates_are_all_counted(count: int) -> None:
    async def scenario() -> None:
        repository, _ = _repository()
        deck = await repository.collections.create(OWNER, "Deck")

        async with anyio.create_task_group() as tg:
            for n in range(count):
                tg.start_soon(repository.items.create, OWNER, deck.id, f"Q{n}", "A")

        stored = await repository.collections.get(OWNER, deck.id)
        assert stored.item_count == count
        assert len(await repository.items.list(OWNER, deck.id)) == count

    anyio.run(scenario)


@settings(max_examples=60, deadline=None)
@given(
    count=st.integers(min_value=1, max_value=8),
    conflicts=st.integers(min_value=0, max_value=12),
    lost=st.integers(min_value=0, max_value=4),
)
def test_count_matches_successful_creates_when_some_fail(
    count: int, conflicts: int, lost: int
) -> None:
    async def scenario() -> None:
        store = MemoryBlobStore()
        repository = StudyRepository(
            store, retry=_TIGHT_RETRY, max_concurrent_writes=4
        )
        deck = await repository.collections.create(OWNER, "Deck")
        store.force_conflicts(collection_key(OWNER, deck.id), conflicts)
        store.lose_acknowledgements(collection_key(OWNER, deck.id), lost)
        succeeded = 0

        async def create(n: int) -> None:
            nonlocal succeeded
            try:
                _ = await repository.items.create(OWNER, deck.id, f"Q{n}", "A")
            except ConcurrencyExhaustedError:
                return
            succeeded += 1

        async with anyio.create_task_group() as tg:
            for n in range(count):
                tg.start_soon(create, n)

        stored = await repository.collections.get(OWNER, deck.id)
        keys = await store.list_prefix(items_prefix(OWNER, deck.id))
        assert stored.item_count == succeeded == len(keys)

    anyio.run(scenario)


@settings(max_examples=50, deadline=None)
@given(ops=operations)
def test_count_tracks_stored_items(ops: list[tuple[str, int]]) -> None:
    async def scenario() -> None:
        repository, store = _repository()
        deck = await repository.collections.create(OWNER, "Deck")

        for kind, amount in ops:
            if kind == "batch":
                drafts = [{"question": "Q", "answer": "A"}] * amount
                _ = await repository.items.create_batch(OWNER, deck.id, drafts)
                continue
            items = await repository.items.list(OWNER, deck.id)
            if items:
                target = items[amount % len(items)]
                await repository.items.delete(OWNER, deck.id, target.id)

        stored = await repository.collections.get(OWNER, deck.id)
        keys = await store.list_prefix(items_prefix(OWNER, deck.id))
        assert stored.item_count == len(keys)

    anyio.run(scenario)


@settings(max_examples=50, deadline=None)
@given(changes=deltas)
def test_count_is_never_negative(changes: list[int]) -> None:
    async def scenario() -> None:
        repository, _ = _repository()
        deck = await repository.collections.create(OWNER, "Deck")

        expected = 0
        for delta in changes:
            updated = await repository.collections.adjust_count(
                OWNER, deck.id, delta
            )
            expected = max(0, expected + delta)
            assert updated.item_count == expected

    anyio.run(scenario)


@settings(max_examples=30, deadline=None)
@given(lost=st.integers(min_value=1, max_value=7))
def test_lost_acknowledgement_is_applied_once(lost: int) -> None:
    async def scenario() -> None:
        repository, store = _repository()
        deck = await repository.collections.create(OWNER, "Deck")
        store.lose_acknowledgements(collection_key(OWNER, deck.id), lost)

        for _ in range(lost):
            _ = await repository.collections.adjust_count(OWNER, deck.id, 1)

        stored = await repository.collections.get(OWNER, deck.id)
        assert stored.item_count == lost

    anyio.run(scenario)


@given(
    targets=st.tuples(*[st.integers(min_value=0, max_value=500)] * 3),
    progress=st.tuples(*[st.integers(min_value=0, max_value=1000)] * 3),
)
def test_percent_complete_is_bounded(
    targets: tuple[int, int, int], progress: tuple[int, int, int]
) -> None:
    now = utc_now()
    goal = Goal(
        id="g",
        owner_id=OWNER,
        title="Goal",
        target_items=targets[0],
        target_minutes=targets[1],
        target_days=targets[2],
        start_date=now,
        progress=GoalProgress(
            items_studied=progress[0],
            minutes_spent=progress[1],
            days_completed=progress[2],
            last_checkin=now,
        ),
        updated_at=now,
    )

    percent = goal.percent_complete()

    assert 0 <= percent <= 100
    assert goal.is_completed() == (percent == 100)
