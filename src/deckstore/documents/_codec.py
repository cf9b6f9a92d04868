"""Document codec.

Serializes document models to the UTF-8 JSON payloads stored in the blob
store and back. Encoding is deterministic (sorted keys) so that identical
documents always produce identical bytes.
"""

from typing import TYPE_CHECKING, TypeVar

import orjson
from pydantic import BaseModel, ValidationError

from deckstore.exceptions import DocumentDecodeError

if TYPE_CHECKING:
    from collections.abc import Mapping

ModelT = TypeVar("ModelT", bound=BaseModel)


def encode_document(document: BaseModel) -> bytes:
    """Serialize a document to JSON bytes.

    Args:
        document: The model to serialize.

    Returns:
        UTF-8 JSON with sorted keys.
    """
    return orjson.dumps(document.model_dump(mode="json"), option=orjson.OPT_SORT_KEYS)


def decode_document(
    payload: bytes,
    model: type[ModelT],
    *,
    key: str | None = None,
) -> ModelT:
    """Deserialize JSON bytes into a document model.

    Args:
        payload: Raw stored bytes.
        model: The model class to validate against.
        key: Store key the payload came from, for error context.

    Returns:
        The validated document.

    Raises:
        DocumentDecodeError: If the payload is not JSON or does not match
            the model.
    """
    try:
        data: Mapping[str, object] = orjson.loads(payload)
    except orjson.JSONDecodeError as e:
        msg = f"Stored payload is not valid JSON: {e}"
        raise DocumentDecodeError(msg, key=key) from e

    try:
        return model.model_validate(data)
    except ValidationError as e:
        msg = f"Stored payload is not a valid {model.__name__}: {e}"
        raise DocumentDecodeError(msg, key=key) from e
