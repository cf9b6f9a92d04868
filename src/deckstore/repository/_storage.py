"""Document load/save helpers shared by the entity managers."""

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, TypeVar

import anyio
from pydantic import ValidationError

from deckstore.documents import Document, decode_document, encode_document
from deckstore.exceptions import (
    BlobNotFoundError,
    DocumentNotFoundError,
    InvalidInputError,
)

if TYPE_CHECKING:
    from deckstore.blob import BlobStore

T = TypeVar("T", bound=Document)


def first_exception(group: BaseExceptionGroup[BaseException]) -> BaseException:
    """Return the first leaf exception of a (possibly nested) exception group."""
    exc: BaseException = group
    while isinstance(exc, BaseExceptionGroup):
        exc = exc.exceptions[0]
    return exc


def require_text(value: str | None, field: str) -> str:
    """Return a stripped text value, rejecting blank input.

    Raises:
        InvalidInputError: If the value is None or only whitespace.
    """
    text = (value or "").strip()
    if not text:
        msg = f"{field} is required"
        raise InvalidInputError(msg, field=field)
    return text


def check_fields(fields: Mapping[str, object], allowed: frozenset[str]) -> None:
    """Reject any field name outside ``allowed``.

    Raises:
        InvalidInputError: Naming the first disallowed field.
    """
    for name in fields:
        if name not in allowed:
            permitted = ", ".join(sorted(allowed))
            msg = f"Field '{name}' cannot be updated (allowed: {permitted})"
            raise InvalidInputError(msg, field=name)


def merge_fields(
    document: T,
    fields: Mapping[str, Any],  # pyright: ignore[reportExplicitAny]
    allowed: frozenset[str],
) -> T:
    """Return a copy of a document with caller-supplied fields applied.

    The merged document is revalidated, so values of the wrong type are
    rejected rather than stored.

    Args:
        document: The current document.
        fields: Field values to apply.
        allowed: Names the caller may change.

    Returns:
        The merged document.

    Raises:
        InvalidInputError: If a field is not allowed or a value is invalid.
    """
    check_fields(fields, allowed)

    data = document.model_dump()
    data.update(fields)
    try:
        return type(document).model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or None
        msg = f"Invalid value for '{field}': {first['msg']}"
        raise InvalidInputError(msg, field=field) from e


async def load_document(
    store: "BlobStore",  # noqa: UP037
    key: str,
    model: type[T],
) -> T:
    """Read and decode a single document.

    Raises:
        DocumentNotFoundError: If nothing is stored under the key.
    """
    try:
        blob = await store.get(key)
    except BlobNotFoundError as e:
        msg = f"Document '{key}' does not exist"
        raise DocumentNotFoundError(msg, key=key) from e
    return decode_document(blob.data, model, key=key)


async def save_document(
    store: "BlobStore",  # noqa: UP037
    key: str,
    document: Document,
) -> str:
    """Write a document unconditionally and return its new version."""
    return await store.put(key, encode_document(document))


async def load_prefix(
    store: "BlobStore",  # noqa: UP037
    prefix: str,
    model: type[T],
    limiter: anyio.CapacityLimiter,
) -> list[T]:
    """Read every document under a prefix.

    Documents are fetched concurrently. A key that disappears between the
    listing and its read is skipped.

    Args:
        store: The blob store.
        prefix: Key prefix to list.
        model: Document model of the listed keys.
        limiter: Bounds the number of reads in flight.

    Returns:
        The decoded documents, in no particular order.
    """
    keys = await store.list_prefix(prefix)
    documents: list[T] = []

    async def _load(key: str) -> None:
        async with limiter:
            try:
                documents.append(await load_document(store, key, model))
            except DocumentNotFoundError:
                # Deleted after the listing was taken
                return

    try:
        async with anyio.create_task_group() as tg:
            for key in keys:
                tg.start_soon(_load, key)
    except BaseExceptionGroup as eg:
        raise first_exception(eg) from None

    return documents
