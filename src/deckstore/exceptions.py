"""Deckstore exceptions.

Every error raised by the library derives from DeckstoreError and carries an
HTTP-equivalent ``status_code`` so that a web layer can map failures to
responses without inspecting exception types.
"""

from pathlib import Path
from typing import Any, ClassVar


class DeckstoreError(Exception):
    """Base exception for deckstore errors."""

    status_code: ClassVar[int] = 500


class InvalidInputError(DeckstoreError, ValueError):
    """Raised when a caller supplies an empty or malformed value.

    Attributes:
        field: Name of the offending field, if known.
    """

    status_code: ClassVar[int] = 400

    def __init__(self, message: str, *, field: str | None = None) -> None:
        """Initialize with error message and optional field name."""
        super().__init__(message)
        self.field: str | None = field


class DocumentNotFoundError(DeckstoreError, KeyError):
    """Raised when a document does not exist in the store.

    Attributes:
        key: Store key that was looked up.
    """

    status_code: ClassVar[int] = 404

    def __init__(self, message: str, *, key: str) -> None:
        """Initialize with error message and store key."""
        super().__init__(message)
        self.key: str = key

    def __str__(self) -> str:
        """Return the message without KeyError's repr quoting."""
        return str(self.args[0]) if self.args else ""


class DocumentDecodeError(DeckstoreError):
    """Raised when a stored payload cannot be decoded into a document.

    Attributes:
        key: Store key of the payload, if known.
    """

    def __init__(self, message: str, *, key: str | None = None) -> None:
        """Initialize with error message and optional store key."""
        super().__init__(message)
        self.key: str | None = key


class ConcurrencyExhaustedError(DeckstoreError):
    """Raised when an optimistic update loses every conditional write.

    The document is left at its last successfully written state, unless
    outcome_unknown is set: the final write was reported as failed but may
    have landed, and a re-read could not confirm either way.

    Attributes:
        key: Store key of the contended document.
        attempts: Number of read-modify-write attempts made.
        outcome_unknown: True when the last write may have been applied.
    """

    def __init__(
        self,
        message: str,
        *,
        key: str,
        attempts: int,
        outcome_unknown: bool = False,
    ) -> None:
        """Initialize with error message and retry context."""
        super().__init__(message)
        self.key: str = key
        self.attempts: int = attempts
        self.outcome_unknown: bool = outcome_unknown


# =============================================================================
# Blob Store Exceptions
# =============================================================================


class BlobStoreError(DeckstoreError):
    """Base exception for blob store operations.

    Attributes:
        key: Store key (or prefix) involved in the failed call.
    """

    def __init__(self, message: str, *, key: str) -> None:
        """Initialize with error message and store key."""
        super().__init__(message)
        self.key: str = key


class BlobNotFoundError(BlobStoreError, KeyError):
    """Raised by ``get`` when no object exists under the key."""

    status_code: ClassVar[int] = 404

    def __str__(self) -> str:
        """Return the message without KeyError's repr quoting."""
        return str(self.args[0]) if self.args else ""


class ConflictError(BlobStoreError):
    """Raised when a conditional write's expected version does not match.

    Attributes:
        expected_version: The version token the writer supplied.
        maybe_applied: True when the write may have landed before the
            rejection was reported, e.g. a request that was resent after
            its first response was lost.
    """

    status_code: ClassVar[int] = 409

    def __init__(
        self,
        message: str,
        *,
        key: str,
        expected_version: str | None = None,
        maybe_applied: bool = False,
    ) -> None:
        """Initialize with error message and version context."""
        super().__init__(message, key=key)
        self.expected_version: str | None = expected_version
        self.maybe_applied: bool = maybe_applied


class TransientIOError(BlobStoreError):
    """Raised when the store cannot be reached or answers unexpectedly.

    Attributes:
        cause: The underlying transport exception, if any.
        maybe_applied: True when a failed write may still have landed.
    """

    def __init__(
        self,
        message: str,
        *,
        key: str,
        cause: Exception | None = None,
        maybe_applied: bool = False,
    ) -> None:
        """Initialize with error message and optional cause."""
        super().__init__(message, key=key)
        self.cause: Exception | None = cause
        self.maybe_applied: bool = maybe_applied


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigError(DeckstoreError):
    """Base exception for configuration errors."""


class ConfigLoadError(ConfigError):
    """Raised when configuration cannot be loaded or parsed."""

    def __init__(
        self,
        message: str,
        *,
        path: Path | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        """Initialize with error message and optional location context."""
        super().__init__(message)
        self.path: Path | None = path
        self.line: int | None = line
        self.column: int | None = column


class ConfigValidationError(ConfigError):
    """Raised when configuration fails validation."""

    def __init__(
        self,
        message: str,
        *,
        key: str,
        value: Any,  # pyright: ignore[reportAny,reportExplicitAny]
        expected: str,
    ) -> None:
        """Initialize with error message and validation context."""
        super().__init__(message)
        self.key: str = key
        self.value: Any = value  # pyright: ignore[reportExplicitAny]
        self.expected: str = expected
