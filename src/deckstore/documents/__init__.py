"""Stored document models, codec and key layout.

Models:
    Document: Base class carrying owner and last-updated timestamp.
    Collection: Named grouping of items with a derived item count.
    Item: Question/answer unit belonging to one collection.
    Goal: Study objective with embedded GoalProgress.
    UsageAggregate: Per-owner study statistics with StudySession history.

Codec:
    encode_document / decode_document: JSON (de)serialization.

Keys:
    collection_key, item_key, goal_key, usage_key and their prefixes.
"""

from ._codec import decode_document, encode_document
from ._keys import (
    COLLECTIONS_PREFIX,
    GOALS_PREFIX,
    ITEMS_PREFIX,
    USAGE_PREFIX,
    collection_key,
    collections_prefix,
    goal_key,
    goals_prefix,
    item_key,
    items_prefix,
    key_segment,
    usage_key,
)
from ._models import (
    Collection,
    Difficulty,
    Document,
    Goal,
    GoalProgress,
    GoalType,
    Item,
    StudyMode,
    StudySession,
    UsageAggregate,
    new_document_id,
)

__all__ = [
    "COLLECTIONS_PREFIX",
    "GOALS_PREFIX",
    "ITEMS_PREFIX",
    "USAGE_PREFIX",
    "Collection",
    "Difficulty",
    "Document",
    "Goal",
    "GoalProgress",
    "GoalType",
    "Item",
    "StudyMode",
    "StudySession",
    "UsageAggregate",
    "collection_key",
    "collections_prefix",
    "decode_document",
    "encode_document",
    "goal_key",
    "goals_prefix",
    "item_key",
    "items_prefix",
    "key_segment",
    "new_document_id",
    "usage_key",
]
