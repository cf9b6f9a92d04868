"""Blob store protocol for type-safe dependency injection.

This module defines a runtime-checkable Protocol that every blob store
backend satisfies, so the document layer can be exercised against the
in-memory store in tests and against a remote store in production.
"""

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class Blob:
    """A stored payload together with the version it was read at.

    Attributes:
        data: Raw bytes of the stored object.
        version: Opaque version token assigned by the store on write.
    """

    data: bytes
    version: str


@runtime_checkable
class BlobStore(Protocol):
    """Protocol for key-addressed object stores with conditional writes.

    Implementations own no business logic. Every method is a network round
    trip (or behaves like one) and may raise TransientIOError.

    Example:
        >>> async def touch(store: BlobStore, key: str) -> None:
        ...     blob = await store.get(key)
        ...     await store.put(key, blob.data, expected_version=blob.version)
    """

    async def get(self, key: str) -> Blob:
        """Fetch an object and its current version.

        Args:
            key: The object key.

        Returns:
            The stored bytes and version token.

        Raises:
            BlobNotFoundError: If no object exists under the key.
            TransientIOError: If the store cannot be reached.
        """
        ...

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
            expected_version: If given, the write only succeeds when the
                stored version equals this token. An absent object never
                matches.

        Returns:
            The version token of the newly written object.

        Raises:
            ConflictError: If expected_version does not match.
            TransientIOError: If the store cannot be reached.
        """
        ...

    async def delete(self, key: str) -> None:
        """Delete an object. Deleting an absent key is not an error.

        Args:
            key: The object key.

        Raises:
            TransientIOError: If the store cannot be reached.
        """
        ...

    async def list_prefix(self, prefix: str) -> list[str]:
        """List every key that starts with the prefix.

        The result is a snapshot taken at call time, in no particular order.

        Args:
            prefix: Key prefix to match.

        Returns:
            Matching keys.

        Raises:
            TransientIOError: If the store cannot be reached.
        """
        ...
