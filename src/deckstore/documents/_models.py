"""Document models for stored study entities.

This module defines the pydantic models persisted as JSON documents:
- Collection: a named grouping of items carrying the derived item count
- Item: a question/answer unit that belongs to one collection
- Goal: a tracked study objective with embedded progress
- UsageAggregate: per-owner cumulative study statistics
"""

import math
import uuid
from datetime import datetime  # noqa: TC003 - Used at runtime by pydantic
from enum import StrEnum
from typing import ClassVar, Self

from pydantic import BaseModel, ConfigDict, Field


def new_document_id() -> str:
    """Generate a fresh, globally unique document identifier."""
    return str(uuid.uuid4())


def _ratio(done: int, target: int) -> float:
    return done / target if target > 0 else 1.0


class Difficulty(StrEnum):
    """Difficulty tag attached to an item."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class GoalType(StrEnum):
    """Recurrence type of a goal."""

    DAILY = "daily"
    WEEKLY = "weekly"
    CUSTOM = "custom"


class StudyMode(StrEnum):
    """Study mode a session was run in."""

    FLIP = "flip"
    MULTIPLE_CHOICE = "multiple-choice"
    ESSAY = "essay"


class Document(BaseModel):
    """Base class for every stored document.

    Attributes:
        owner_id: Identifier of the owning user.
        updated_at: When the document was last written.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    owner_id: str
    updated_at: datetime

    def touched(self, now: datetime) -> Self:
        """Return a copy with the last-updated timestamp set to ``now``."""
        return self.model_copy(update={"updated_at": now})


class Collection(Document):
    """A named grouping of items.

    ``item_count`` is derived: it must track the number of live item
    documents stored under this collection's item prefix, and is only ever
    changed through optimistic updates.

    Attributes:
        id: Unique collection identifier.
        name: Display name.
        description: Free-form description.
        item_count: Number of items in the collection.
        created_at: When the collection was created.
    """

    id: str
    name: str
    description: str = ""
    item_count: int = Field(default=0, ge=0)
    created_at: datetime


class Item(Document):
    """A question/answer unit belonging to exactly one collection.

    Attributes:
        id: Unique item identifier.
        collection_id: Identifier of the owning collection.
        question: Prompt text.
        answer: Answer text.
        difficulty: Difficulty tag.
        created_at: When the item was created.
    """

    id: str
    collection_id: str
    question: str
    answer: str
    difficulty: Difficulty = Difficulty.MEDIUM
    created_at: datetime


class GoalProgress(BaseModel):
    """Progress recorded against a goal.

    Attributes:
        items_studied: Items studied so far.
        minutes_spent: Minutes spent so far.
        days_completed: Days on which the goal was met.
        last_checkin: When progress was last recorded.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    items_studied: int = Field(default=0, ge=0)
    minutes_spent: int = Field(default=0, ge=0)
    days_completed: int = Field(default=0, ge=0)
    last_checkin: datetime


class Goal(Document):
    """A tracked study objective.

    Goals have no cross-document invariant; updates are plain
    last-write-wins writes.

    Attributes:
        id: Unique goal identifier.
        title: Display title.
        target_items: Items to study (0 means untracked).
        target_minutes: Minutes to spend (0 means untracked).
        target_days: Days per period to meet the goal (0 means untracked).
        goal_type: Recurrence type.
        start_date: When the goal started.
        deadline: Optional end date.
        progress: Progress so far.
    """

    id: str
    title: str
    target_items: int = Field(default=0, ge=0)
    target_minutes: int = Field(default=0, ge=0)
    target_days: int = Field(default=7, ge=0)
    goal_type: GoalType = GoalType.CUSTOM
    start_date: datetime
    deadline: datetime | None = None
    progress: GoalProgress

    def percent_complete(self) -> int:
        """Return overall completion as a whole percentage in [0, 100].

        Averages the progress ratio of every tracked target. A target whose
        ratio is exactly 1 is left out of the average, as is any target set
        to 0; with nothing left to average the goal counts as not started.
        """
        ratios = [
            _ratio(self.progress.items_studied, self.target_items),
            _ratio(self.progress.minutes_spent, self.target_minutes),
            _ratio(self.progress.days_completed, self.target_days),
        ]
        tracked = [ratio for ratio in ratios if ratio != 1.0]
        if not tracked:
            return 0

        average = sum(tracked) / len(tracked)
        return min(100, math.floor(average * 100 + 0.5))

    def is_completed(self) -> bool:
        """Check whether the goal has reached 100 percent."""
        return self.percent_complete() >= 100  # noqa: PLR2004

    def status_message(self) -> str:
        """Return a short human-readable description of goal progress."""
        percent = self.percent_complete()
        if percent == 0:
            return "Not started"
        if percent < 25:  # noqa: PLR2004
            return "Just getting started"
        if percent < 50:  # noqa: PLR2004
            return "Good progress"
        if percent < 75:  # noqa: PLR2004
            return "Almost there"
        if percent < 100:  # noqa: PLR2004
            return "Almost done"
        return "Goal completed!"


class StudySession(BaseModel):
    """A completed study session recorded in a usage aggregate.

    Attributes:
        id: Unique session identifier.
        owner_id: Identifier of the studying user.
        collection_id: Collection that was studied.
        mode: Study mode used.
        started_at: When the session started.
        completed_at: When the session ended, if it did.
        items_reviewed: Identifiers of reviewed items.
        correct_answers: Number of correct answers.
        total_items: Number of items in the session.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    id: str
    owner_id: str
    collection_id: str
    mode: StudyMode
    started_at: datetime
    completed_at: datetime | None = None
    items_reviewed: tuple[str, ...] = ()
    correct_answers: int = Field(default=0, ge=0)
    total_items: int = Field(default=0, ge=0)


class UsageAggregate(Document):
    """Cumulative study statistics, one document per owner.

    Attributes:
        total_items_studied: Items studied across all sessions.
        total_sessions: Number of recorded sessions.
        average_accuracy: Running mean of per-session accuracy.
        weak_areas: Topics flagged as weak.
        session_history: Every recorded session, oldest first.
    """

    total_items_studied: int = Field(default=0, ge=0)
    total_sessions: int = Field(default=0, ge=0)
    average_accuracy: float = 0.0
    weak_areas: tuple[str, ...] = ()
    session_history: tuple[StudySession, ...] = ()
