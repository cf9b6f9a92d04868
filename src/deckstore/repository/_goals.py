"""Goal manager.

Goals have no cross-document invariant. Every write is a plain
last-write-wins put of the whole document.
"""

from datetime import datetime  # noqa: TC003
from typing import TYPE_CHECKING, Any, Final

import anyio

from deckstore.documents import (
    Goal,
    GoalProgress,
    GoalType,
    goal_key,
    goals_prefix,
    new_document_id,
)
from deckstore.exceptions import InvalidInputError
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

__all__ = ["GoalManager"]

_UPDATABLE_FIELDS: Final = frozenset(
    {"title", "target_items", "target_minutes", "target_days", "goal_type", "deadline"}
)


def _non_negative(value: int, field: str) -> int:
    if value < 0:
        msg = f"{field} must not be negative"
        raise InvalidInputError(msg, field=field)
    return value


class GoalManager:
    """Manager for study goal documents."""

    __slots__: Final = ("_limiter", "_logger", "_store")

    def __init__(
        self,
        store: "BlobStore",  # noqa: UP037
        *,
        limiter: anyio.CapacityLimiter | None = None,
        logger: "FilteringBoundLogger | None" = None,  # noqa: UP037
    ) -> None:
        """Initialize the goal manager.

        Args:
            store: Blob store holding the documents.
            limiter: Bounds concurrent reads when listing.
            logger: Optional logger.
        """
        self._store = store
        self._limiter = limiter or anyio.CapacityLimiter(16)
        self._logger = logger

    def _key(self, owner_id: str, goal_id: str) -> str:
        return goal_key(owner_id, goal_id)

    async def _save(self, goal: Goal) -> Goal:
        _ = await save_document(self._store, self._key(goal.owner_id, goal.id), goal)
        return goal

    async def create(  # noqa: PLR0913
        self,
        owner_id: str,
        title: str,
        target_items: int = 0,
        target_minutes: int = 0,
        *,
        goal_type: GoalType | str = GoalType.CUSTOM,
        target_days: int = 7,
        deadline: datetime | None = None,
    ) -> Goal:
        """Create a goal with empty progress.

        Args:
            owner_id: Identifier of the owning user.
            title: Display title; surrounding whitespace is stripped.
            target_items: Items to study (0 leaves it untracked).
            target_minutes: Minutes to spend (0 leaves it untracked).
            goal_type: Recurrence type.
            target_days: Days per period on which to meet the goal.
            deadline: Optional end date.

        Returns:
            The stored goal.

        Raises:
            InvalidInputError: If owner_id or title is blank, a target is
                negative, or the goal type is unknown.
        """
        owner_id = require_text(owner_id, "owner_id")
        try:
            kind = GoalType(goal_type)
        except ValueError as e:
            msg = f"Unknown goal type '{goal_type}'"
            raise InvalidInputError(msg, field="goal_type") from e

        now = utc_now()
        goal = Goal(
            id=new_document_id(),
            owner_id=owner_id,
            title=require_text(title, "title"),
            target_items=_non_negative(target_items, "target_items"),
            target_minutes=_non_negative(target_minutes, "target_minutes"),
            target_days=_non_negative(target_days, "target_days"),
            goal_type=kind,
            start_date=now,
            deadline=deadline,
            progress=GoalProgress(last_checkin=now),
            updated_at=now,
        )
        return await self._save(goal)

    async def get(self, owner_id: str, goal_id: str) -> Goal:
        """Get a goal by ID.

        Raises:
            DocumentNotFoundError: If the goal does not exist.
        """
        return await load_document(self._store, self._key(owner_id, goal_id), Goal)

    async def list(self, owner_id: str) -> list[Goal]:
        """List an owner's goals, most recently started first."""
        goals = await load_prefix(
            self._store, goals_prefix(owner_id), Goal, self._limiter
        )
        return sorted(goals, key=lambda g: g.start_date, reverse=True)

    async def update(
        self,
        owner_id: str,
        goal_id: str,
        **fields: Any,  # pyright: ignore[reportExplicitAny]
    ) -> Goal:
        """Update a goal's title, targets, type or deadline.

        Raises:
            InvalidInputError: If a field is protected, unknown, or invalid.
            DocumentNotFoundError: If the goal does not exist.
        """
        check_fields(fields, _UPDATABLE_FIELDS)
        if "title" in fields:
            fields["title"] = require_text(fields["title"], "title")

        goal = await self.get(owner_id, goal_id)
        updated = merge_fields(goal, fields, _UPDATABLE_FIELDS)
        return await self._save(updated.touched(utc_now()))

    async def record_progress(
        self,
        owner_id: str,
        goal_id: str,
        *,
        items: int = 0,
        minutes: int = 0,
        days: int = 0,
    ) -> Goal:
        """Add studied items, minutes and completed days to a goal.

        Raises:
            InvalidInputError: If an amount is negative.
            DocumentNotFoundError: If the goal does not exist.
        """
        _ = _non_negative(items, "items")
        _ = _non_negative(minutes, "minutes")
        _ = _non_negative(days, "days")

        goal = await self.get(owner_id, goal_id)
        now = utc_now()
        progress = goal.progress.model_copy(
            update={
                "items_studied": goal.progress.items_studied + items,
                "minutes_spent": goal.progress.minutes_spent + minutes,
                "days_completed": goal.progress.days_completed + days,
                "last_checkin": now,
            }
        )
        updated = goal.model_copy(update={"progress": progress, "updated_at": now})
        _ = await self._save(updated)

        if self._logger and updated.is_completed() and not goal.is_completed():
            self._logger.info("goal_completed", owner_id=owner_id, goal_id=goal_id)
        return updated

    async def delete(self, owner_id: str, goal_id: str) -> None:
        """Delete a goal; deleting a missing goal is not an error."""
        await self._store.delete(self._key(owner_id, goal_id))
