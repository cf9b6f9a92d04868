"""Store key layout.

Every entity kind lives under its own prefix, with the owner (and, for
items, the collection) as path segments so that a prefix listing returns
exactly one owner's or one collection's documents:

    collections/{owner}/{collection}.json
    items/{owner}/{collection}/{item}.json
    goals/{owner}/{goal}.json
    usage/{owner}/global.json
"""

from typing import Final

from deckstore.exceptions import InvalidInputError

COLLECTIONS_PREFIX: Final = "collections/"
ITEMS_PREFIX: Final = "items/"
GOALS_PREFIX: Final = "goals/"
USAGE_PREFIX: Final = "usage/"
DOCUMENT_SUFFIX: Final = ".json"


def key_segment(value: str, field: str) -> str:
    """Validate a value for use as a single key path segment.

    Args:
        value: The identifier to embed in a key.
        field: Field name for error reporting.

    Returns:
        The value, unchanged.

    Raises:
        InvalidInputError: If the value is empty or contains a slash.
    """
    if not value or not value.strip():
        msg = f"{field} is required"
        raise InvalidInputError(msg, field=field)
    if "/" in value:
        msg = f"{field} must not contain '/'"
        raise InvalidInputError(msg, field=field)
    return value


def collections_prefix(owner_id: str) -> str:
    return f"{COLLECTIONS_PREFIX}{key_segment(owner_id, 'owner_id')}/"


def collection_key(owner_id: str, collection_id: str) -> str:
    segment = key_segment(collection_id, "collection_id")
    return f"{collections_prefix(owner_id)}{segment}{DOCUMENT_SUFFIX}"


def items_prefix(owner_id: str, collection_id: str) -> str:
    owner = key_segment(owner_id, "owner_id")
    collection = key_segment(collection_id, "collection_id")
    return f"{ITEMS_PREFIX}{owner}/{collection}/"


def item_key(owner_id: str, collection_id: str, item_id: str) -> str:
    segment = key_segment(item_id, "item_id")
    return f"{items_prefix(owner_id, collection_id)}{segment}{DOCUMENT_SUFFIX}"


def goals_prefix(owner_id: str) -> str:
    return f"{GOALS_PREFIX}{key_segment(owner_id, 'owner_id')}/"


def goal_key(owner_id: str, goal_id: str) -> str:
    segment = key_segment(goal_id, "goal_id")
    return f"{goals_prefix(owner_id)}{segment}{DOCUMENT_SUFFIX}"


def usage_key(owner_id: str) -> str:
    owner = key_segment(owner_id, "owner_id")
    return f"{USAGE_PREFIX}{owner}/global{DOCUMENT_SUFFIX}"

