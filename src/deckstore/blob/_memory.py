"""In-memory blob store.

This module provides MemoryBlobStore, a BlobStore implementation that keeps
objects in a dictionary. It is used for tests and local development and
behaves like a remote store in the ways that matter to callers: every call
yields to the event loop, versions change on every write, and conditional
writes are checked against the current version.
"""

import hashlib
from collections import Counter
from dataclasses import dataclass
from typing import TYPE_CHECKING

import anyio.lowlevel

from deckstore.exceptions import BlobNotFoundError, ConflictError

from ._protocol import Blob

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger


@dataclass(frozen=True, slots=True)
class BlobCall:
    """Record of a single call made against a MemoryBlobStore.

    Attributes:
        operation: One of "get", "put", "delete", "list".
        key: Key (or prefix for "list") the call addressed.
        expected_version: Version precondition for conditional puts.
    """

    operation: str
    key: str
    expected_version: str | None = None


class MemoryBlobStore:
    """In-memory implementation of BlobStore.

    Data is not persisted. Versions are ``<generation>-<md5>`` so that
    rewriting identical bytes still produces a new version, matching stores
    that version every write.

    The store keeps a log of calls and can be told to reject upcoming
    conditional writes, which lets tests simulate competing writers.

    Example:
        >>> store = MemoryBlobStore()
        >>> version = await store.put("a", b"{}")
        >>> (await store.get("a")).version == version
        True
    """

    _objects: dict[str, Blob]
    _generation: int
    _forced_conflicts: Counter[str]
    _lost_acks: Counter[str]
    _logger: "FilteringBoundLogger | None"  # noqa: UP037
    calls: list[BlobCall]

    def __init__(
        self,
        *,
        logger: "FilteringBoundLogger | None" = None,  # noqa: UP037
    ) -> None:
        """Initialize an empty store.

        Args:
            logger: Optional logger for debug-level operation logging.
                If None, no logging is performed.
        """
        self._objects = {}
        self._generation = 0
        self._forced_conflicts = Counter()
        self._lost_acks = Counter()
        self._logger = logger
        self.calls = []

    def __len__(self) -> int:
        """Return the number of stored objects."""
        return len(self._objects)

    def __contains__(self, key: object) -> bool:
        """Check whether an object exists under the key."""
        return key in self._objects

    def _next_version(self, data: bytes) -> str:
        self._generation += 1
        digest = hashlib.md5(data, usedforsecurity=False).hexdigest()
        return f"{self._generation}-{digest}"

    def force_conflicts(self, key: str, count: int) -> None:
        """Reject the next ``count`` conditional writes to a key.

        Each rejected write behaves as if another writer had updated the
        object first: the version is bumped and ConflictError is raised.

        Args:
            key: The key to contend on.
            count: Number of conditional writes to reject.
        """
        self._forced_conflicts[key] += count

    def lose_acknowledgements(self, key: str, count: int) -> None:
        """Apply the next ``count`` conditional writes but report a conflict.

        Simulates a write whose success response was lost and whose resend
        was rejected because the first attempt had already landed.

        Args:
            key: The key whose writes lose their acknowledgement.
            count: Number of writes affected.
        """
        self._lost_acks[key] += count

    def calls_for(self, operation: str, key: str | None = None) -> list[BlobCall]:
        """Return logged calls filtered by operation and optionally key.

        Args:
            operation: Operation name to match.
            key: If given, only calls addressing this key.

        Returns:
            Matching calls in the order they were made.
        """
        return [
            call
            for call in self.calls
            if call.operation == operation and (key is None or call.key == key)
        ]

    async def get(self, key: str) -> Blob:
        """Fetch an object and its current version.

        Args:
            key: The object key.

        Returns:
            The stored bytes and version token.

        Raises:
            BlobNotFoundError: If no object exists under the key.
        """
        await anyio.lowlevel.checkpoint()
        self.calls.append(BlobCall("get", key))
        blob = self._objects.get(key)
        if self._logger:
            self._logger.debug("blob_get", key=key, found=blob is not None)
        if blob is None:
            msg = f"No object stored under '{key}'"
            raise BlobNotFoundError(msg, key=key)
        return blob

    async def put(
        self,
        key: str,
        data: bytes,
        *,
        expected_version: str | None = None,
    ) -> str:
        """Write an object, optionally conditioned on its current version.

        Args:
            key: The object key.
            data: Bytes to store.
            expected_version: Required current version, if any.

        Returns:
            The version token of the newly written object.

        Raises:
            ConflictError: If expected_version does not match.
        """
        await anyio.lowlevel.checkpoint()
        self.calls.append(BlobCall("put", key, expected_version))

        if expected_version is not None:
            current = self._objects.get(key)
            if self._forced_conflicts[key] > 0:
                self._forced_conflicts[key] -= 1
                if current is not None:
                    # A competing writer lands first
                    bumped = self._next_version(current.data)
                    self._objects[key] = Blob(current.data, bumped)
                current = self._objects.get(key)
            if current is None or current.version != expected_version:
                if self._logger:
                    self._logger.debug(
                        "blob_put_conflict",
                        key=key,
                        expected_version=expected_version,
                        current_version=current.version if current else None,
                    )
                msg = f"Version mismatch writing '{key}'"
                raise ConflictError(msg, key=key, expected_version=expected_version)

        version = self._next_version(data)
        self._objects[key] = Blob(bytes(data), version)
        if expected_version is not None and self._lost_acks[key] > 0:
            self._lost_acks[key] -= 1
            msg = f"Version mismatch writing '{key}'"
            raise ConflictError(
                msg, key=key, expected_version=expected_version, maybe_applied=True
            )
        if self._logger:
            self._logger.debug("blob_put", key=key, version=version, size=len(data))
        return version

    async def delete(self, key: str) -> None:
        """Delete an object if present.

        Args:
            key: The object key.
        """
        await anyio.lowlevel.checkpoint()
        self.calls.append(BlobCall("delete", key))
        existed = self._objects.pop(key, None) is not None
        if self._logger:
            self._logger.debug("blob_delete", key=key, existed=existed)

    async def list_prefix(self, prefix: str) -> list[str]:
        """List every key that starts with the prefix.

        Args:
            prefix: Key prefix to match.

        Returns:
            Matching keys.
        """
        await anyio.lowlevel.checkpoint()
        self.calls.append(BlobCall("list", prefix))
        keys = [key for key in self._objects if key.startswith(prefix)]
        if self._logger:
            self._logger.debug("blob_list", prefix=prefix, count=len(keys))
        return keys
