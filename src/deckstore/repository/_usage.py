"""Usage aggregate manager.

Each owner has a single usage document. Recording a session reads it,
folds the session in and writes it back unconditionally, so two sessions
recorded at the same moment can lose one of them. Switching the write to
``DocumentUpdater.update`` closes that gap.
"""

from typing import TYPE_CHECKING, Final

from deckstore.documents import (
    StudyMode,
    StudySession,
    UsageAggregate,
    key_segment,
    new_document_id,
    usage_key,
)
from deckstore.exceptions import DocumentNotFoundError, InvalidInputError
from deckstore.utils import utc_now

from ._storage import load_document, save_document

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from deckstore.blob import BlobStore

__all__ = ["UsageManager"]


class UsageManager:
    """Manager for per-owner usage aggregates."""

    __slots__: Final = ("_logger", "_store")

    def __init__(
        self,
        store: "BlobStore",  # noqa: UP037
        *,
        logger: "FilteringBoundLogger | None" = None,  # noqa: UP037
    ) -> None:
        """Initialize the usage manager.

        Args:
            store: Blob store holding the documents.
            logger: Optional logger.
        """
        self._store = store
        self._logger = logger

    async def get(self, owner_id: str) -> UsageAggregate:
        """Get an owner's usage aggregate.

        Returns:
            The stored aggregate, or an empty one if none was recorded yet.
        """
        try:
            return await load_document(self._store, usage_key(owner_id), UsageAggregate)
        except DocumentNotFoundError:
            return UsageAggregate(owner_id=owner_id, updated_at=utc_now())

    async def record_session(  # noqa: PLR0913
        self,
        owner_id: str,
        collection_id: str,
        mode: StudyMode | str,
        correct: int,
        total: int,
        accuracy: float,
    ) -> UsageAggregate:
        """Fold a completed study session into the owner's aggregate.

        ``average_accuracy`` becomes the running mean of per-session
        accuracy over all recorded sessions.

        Args:
            owner_id: Identifier of the studying user.
            collection_id: Collection that was studied.
            mode: Study mode used.
            correct: Number of correct answers.
            total: Number of items in the session.
            accuracy: Session accuracy as a percentage in [0, 100].

        Returns:
            The written aggregate.

        Raises:
            InvalidInputError: If a count or the accuracy is out of range,
                or the mode is unknown.
        """
        collection_id = key_segment(collection_id, "collection_id")
        if total < 0 or not 0 <= correct <= total:
            msg = f"correct ({correct}) must be between 0 and total ({total})"
            raise InvalidInputError(msg, field="correct")
        if not 0.0 <= accuracy <= 100.0:  # noqa: PLR2004
            msg = f"accuracy must be between 0 and 100, got {accuracy}"
            raise InvalidInputError(msg, field="accuracy")
        try:
            study_mode = StudyMode(mode)
        except ValueError as e:
            msg = f"Unknown study mode '{mode}'"
            raise InvalidInputError(msg, field="mode") from e

        current = await self.get(owner_id)
        now = utc_now()
        session = StudySession(
            id=new_document_id(),
            owner_id=owner_id,
            collection_id=collection_id,
            mode=study_mode,
            started_at=now,
            completed_at=now,
            correct_answers=correct,
            total_items=total,
        )

        sessions = current.total_sessions + 1
        average = (current.average_accuracy * (sessions - 1) + accuracy) / sessions
        updated = current.model_copy(
            update={
                "total_items_studied": current.total_items_studied + total,
                "total_sessions": sessions,
                "average_accuracy": average,
                "session_history": (*current.session_history, session),
                "updated_at": now,
            }
        )
        _ = await save_document(self._store, usage_key(owner_id), updated)

        if self._logger:
            self._logger.debug(
                "session_recorded",
                owner_id=owner_id,
                collection_id=collection_id,
                total_sessions=sessions,
            )
        return updated

    async def reset(self, owner_id: str) -> None:
        """Delete an owner's usage aggregate."""
        await self._store.delete(usage_key(owner_id))
