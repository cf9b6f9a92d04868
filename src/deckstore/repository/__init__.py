"""Study entity repository.

StudyRepository is the facade over four managers sharing one blob store:

    collections: CollectionManager, owner of the derived item_count
    items: ItemManager, item writes plus optimistic count updates
    goals: GoalManager, last-write-wins goal documents
    usage: UsageManager, per-owner usage aggregates
"""

from ._collections import CollectionManager
from ._goals import GoalManager
from ._items import ItemDraft, ItemManager
from ._repository import StudyRepository
from ._usage import UsageManager

__all__ = [
    "CollectionManager",
    "GoalManager",
    "ItemDraft",
    "ItemManager",
    "StudyRepository",
    "UsageManager",
]
