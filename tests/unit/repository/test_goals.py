from collections.abc import Callable

import pytest
from pendulum import DateTime
from pytest_mock import MockerFixture

from deckstore.blob import MemoryBlobStore
from deckstore.documents import GoalType, goal_key
from deckstore.exceptions import DocumentNotFoundError, InvalidInputError
from deckstore.repository import GoalManager, StudyRepository

pytestmark = pytest.mark.anyio

OWNER = "user-1"


class TestCreate:
    async def test_creates_goal_with_empty_progress(
        self,
        repository: StudyRepository,
        store: MemoryBlobStore,
        freeze_time: Callable[..., DateTime],
    ) -> None:
        now = freeze_time(2024, 4, 1, 8)

        goal = await repository.goals.create(
            OWNER, " Daily review ", target_items=20, goal_type="daily"
        )

        assert goal.title == "Daily review"
        assert goal.goal_type == GoalType.DAILY
        assert goal.start_date == now
        assert goal.progress.items_studied == 0
        assert goal.progress.last_checkin == now
        assert goal.percent_complete() == 0
        assert goal_key(OWNER, goal.id) in store

    async def test_rejects_unknown_goal_type(
        self, repository: StudyRepository
    ) -> None:
        with pytest.raises(InvalidInputError) as exc_info:
            await repository.goals.create(OWNER, "Goal", goal_type="yearly")

        assert exc_info.value.field == "goal_type"

    async def test_rejects_negative_targets(
        self, repository: StudyRepository
    ) -> None:
        with pytest.raises(InvalidInputError) as exc_info:
            await repository.goals.create(OWNER, "Goal", target_minutes=-5)

        assert exc_info.value.field == "target_minutes"

    async def test_rejects_blank_title(self, repository: StudyRepository) -> None:
        with pytest.raises(InvalidInputError):
            await repository.goals.create(OWNER, "  ")


class TestQueries:
    async def test_list_is_most_recently_started_first(
        self,
        repository: StudyRepository,
        freeze_time: Callable[..., DateTime],
    ) -> None:
        _ = freeze_time(2024, 1, 1)
        january = await repository.goals.create(OWNER, "January")
        _ = freeze_time(2024, 3, 1)
        march = await repository.goals.create(OWNER, "March")

        listed = await repository.goals.list(OWNER)

        assert [g.id for g in listed] == [march.id, january.id]

    async def test_get_missing_raises_not_found(
        self, repository: StudyRepository
    ) -> None:
        with pytest.raises(DocumentNotFoundError):
            await repository.goals.get(OWNER, "missing")


class TestUpdate:
    async def test_updates_allowed_fields(self, repository: StudyRepository) -> None:
        goal = await repository.goals.create(OWNER, "Goal", target_items=10)

        updated = await repository.goals.update(
            OWNER, goal.id, title="Bigger goal", target_items=50, goal_type="weekly"
        )

        assert updated.title == "Bigger goal"
        assert updated.target_items == 50
        assert updated.goal_type == GoalType.WEEKLY
        assert await repository.goals.get(OWNER, goal.id) == updated

    @pytest.mark.parametrize("field", ["progress", "start_date", "id"])
    async def test_rejects_protected_fields(
        self, repository: StudyRepository, field: str
    ) -> None:
        goal = await repository.goals.create(OWNER, "Goal")

        with pytest.raises(InvalidInputError):
            await repository.goals.update(OWNER, goal.id, **{field: None})

    async def test_rejects_negative_target(self, repository: StudyRepository) -> None:
        goal = await repository.goals.create(OWNER, "Goal")

        with pytest.raises(InvalidInputError, match="target_items"):
            await repository.goals.update(OWNER, goal.id, target_items=-1)


class TestRecordProgress:
    async def test_accumulates_progress(self, repository: StudyRepository) -> None:
        goal = await repository.goals.create(
            OWNER, "Goal", target_items=100, target_minutes=60, target_days=0
        )

        _ = await repository.goals.record_progress(OWNER, goal.id, items=10)
        updated = await repository.goals.record_progress(
            OWNER, goal.id, items=30, minutes=30
        )

        assert updated.progress.items_studied == 40
        assert updated.progress.minutes_spent == 30
        assert updated.percent_complete() == 45
        assert updated.status_message() == "Good progress"
        assert await repository.goals.get(OWNER, goal.id) == updated

    async def test_rejects_negative_amounts(
        self, repository: StudyRepository
    ) -> None:
        goal = await repository.goals.create(OWNER, "Goal")

        with pytest.raises(InvalidInputError):
            await repository.goals.record_progress(OWNER, goal.id, minutes=-1)

    async def test_logs_completion_once(
        self, store: MemoryBlobStore, mocker: MockerFixture
    ) -> None:
        logger = mocker.MagicMock()
        goals = GoalManager(store, logger=logger)
        goal = await goals.create(OWNER, "Goal", target_items=10, target_days=0)

        _ = await goals.record_progress(OWNER, goal.id, items=15)
        _ = await goals.record_progress(OWNER, goal.id, items=5)

        logger.info.assert_called_once_with(
            "goal_completed", owner_id=OWNER, goal_id=goal.id
        )


class TestDelete:
    async def test_deletes_goal(self, repository: StudyRepository) -> None:
        goal = await repository.goals.create(OWNER, "Goal")

        await repository.goals.delete(OWNER, goal.id)

        with pytest.raises(DocumentNotFoundError):
            await repository.goals.get(OWNER, goal.id)

    async def test_deleting_missing_goal_is_not_an_error(
        self, repository: StudyRepository
    ) -> None:
        await repository.goals.delete(OWNER, "missing")
