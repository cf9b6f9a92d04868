"""Optimistic read-modify-write engine.

This module provides DocumentUpdater, which applies a pure mutation to a
stored document using conditional writes. Each attempt reads the document
and its version, applies the mutation, and writes the result only if the
version is unchanged. Lost races are retried after a jittered backoff until
the attempt budget runs out.
"""

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, TypeAlias, TypeVar, final

import anyio

from deckstore.documents import Document, decode_document, encode_document
from deckstore.exceptions import (
    BlobNotFoundError,
    ConcurrencyExhaustedError,
    ConflictError,
    DocumentNotFoundError,
)
from deckstore.utils import utc_now

from ._backoff import ExponentialBackoff

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from deckstore.blob import Blob, BlobStore
    from deckstore.config import RetryConfiguration

Sleep: TypeAlias = Callable[[float], Awaitable[None]]

T = TypeVar("T", bound=Document)


@final
class DocumentUpdater:
    """Applies mutations to stored documents under optimistic concurrency.

    The updater holds no locks. Mutual exclusion comes entirely from the
    store's conditional writes: a write carrying a stale version is
    rejected, and the updater starts over from a fresh read.

    A mutation must be a pure function of the document it receives, since
    it may run once per attempt.

    Example:
        >>> updater = DocumentUpdater(store)
        >>> collection = await updater.update(
        ...     key,
        ...     Collection,
        ...     lambda c: c.model_copy(update={"item_count": c.item_count + 1}),
        ... )
    """

    __slots__ = ("_backoff", "_logger", "_max_attempts", "_sleep", "_store")

    def __init__(
        self,
        store: "BlobStore",  # noqa: UP037
        retry: "RetryConfiguration | None" = None,  # noqa: UP037
        *,
        logger: "FilteringBoundLogger | None" = None,  # noqa: UP037
        sleep: Sleep = anyio.sleep,
    ) -> None:
        """Initialize the updater.

        Args:
            store: Blob store holding the documents.
            retry: Retry policy. Uses the configuration defaults if None.
            logger: Optional logger for conflict and exhaustion events.
            sleep: Awaitable used to wait between attempts.
        """
        self._store = store
        self._logger = logger
        self._sleep = sleep
        if retry is None:
            self._max_attempts = 8
            self._backoff = ExponentialBackoff()
        else:
            self._max_attempts = retry.max_attempts
            self._backoff = ExponentialBackoff.from_config(retry)

    @property
    def max_attempts(self) -> int:
        """Return the total number of attempts made before giving up."""
        return self._max_attempts

    @property
    def backoff(self) -> ExponentialBackoff:
        """Return the backoff calculator used between attempts."""
        return self._backoff

    async def _read(self, key: str) -> "Blob":  # noqa: UP037
        try:
            return await self._store.get(key)
        except BlobNotFoundError as e:
            msg = f"Document '{key}' does not exist"
            raise DocumentNotFoundError(msg, key=key) from e

    async def _landed(
        self, key: str, model: type[T], rejected: bytes, attempt: int
    ) -> T | None:
        """Re-read a key and return the document if it holds rejected bytes."""
        blob = await self._read(key)
        if blob.data != rejected:
            return None
        if self._logger:
            self._logger.info("update_already_applied", key=key, attempt=attempt)
        return decode_document(blob.data, model, key=key)

    async def update(
        self,
        key: str,
        model: type[T],
        mutate: Callable[[T], T],
    ) -> T:
        """Apply a mutation to the document stored under a key.

        A write that is rejected but may have landed is checked by reading
        the key straight away, before any backoff. If the stored bytes are
        exactly what was written, that document is returned and the
        mutation is not applied again.

        Args:
            key: Store key of the document.
            model: Document model used to decode the stored payload.
            mutate: Pure function returning the new document state. The
                last-updated timestamp is stamped after it runs.

        Returns:
            The document as written.

        Raises:
            DocumentNotFoundError: If no document exists under the key.
            ConcurrencyExhaustedError: If every attempt lost its race. Its
                outcome_unknown flag is set when the final write may have
                landed but could not be confirmed.
            DocumentDecodeError: If the stored payload is corrupt.
            TransientIOError: If the store fails; never retried here.
        """
        rejected: bytes | None = None

        for attempt in range(1, self._max_attempts + 1):
            blob = await self._read(key)

            current = decode_document(blob.data, model, key=key)
            updated = mutate(current).touched(utc_now())
            payload = encode_document(updated)

            try:
                _ = await self._store.put(key, payload, expected_version=blob.version)
            except ConflictError as e:
                rejected = payload if e.maybe_applied else None
                if rejected is not None:
                    landed = await self._landed(key, model, rejected, attempt)
                    if landed is not None:
                        return landed
                if attempt == self._max_attempts:
                    break
                delay = self._backoff.delay(attempt)
                if self._logger:
                    self._logger.warning(
                        "update_conflict",
                        key=key,
                        attempt=attempt,
                        max_attempts=self._max_attempts,
                        delay=round(delay, 4),
                    )
                await self._sleep(delay)
            else:
                if self._logger:
                    self._logger.debug("update_applied", key=key, attempt=attempt)
                return updated

        outcome_unknown = rejected is not None
        if self._logger:
            self._logger.error(
                "update_exhausted",
                key=key,
                attempts=self._max_attempts,
                outcome_unknown=outcome_unknown,
            )
        msg = (
            f"Gave up updating '{key}' after {self._max_attempts} conflicting "
            "attempts"
        )
        if outcome_unknown:
            msg += "; the last write may have been applied"
        raise ConcurrencyExhaustedError(
            msg,
            key=key,
            attempts=self._max_attempts,
            outcome_unknown=outcome_unknown,
        )
