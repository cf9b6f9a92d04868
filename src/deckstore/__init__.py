"""Document repository over a versioned blob store.

Study collections, items, goals and usage aggregates are stored as
individual JSON documents. Each collection's item count is kept consistent
with the items stored under it through optimistic, conditional writes.

Example:
    >>> from deckstore import MemoryBlobStore, StudyRepository
    >>> repository = StudyRepository(MemoryBlobStore())
    >>> deck = await repository.collections.create("user-1", "Biology")
    >>> await repository.items.create("user-1", deck.id, "What is ATP?", "Energy")
"""

from deckstore.blob import BlobStore, HttpBlobStore, MemoryBlobStore
from deckstore.config import DeckstoreConfig, load_config
from deckstore.documents import Collection, Goal, Item, UsageAggregate
from deckstore.exceptions import (
    ConcurrencyExhaustedError,
    DeckstoreError,
    DocumentNotFoundError,
    InvalidInputError,
    TransientIOError,
)
from deckstore.occ import DocumentUpdater
from deckstore.repository import ItemDraft, StudyRepository

__all__ = [
    "BlobStore",
    "Collection",
    "ConcurrencyExhaustedError",
    "DeckstoreConfig",
    "DeckstoreError",
    "DocumentNotFoundError",
    "DocumentUpdater",
    "Goal",
    "HttpBlobStore",
    "InvalidInputError",
    "Item",
    "ItemDraft",
    "MemoryBlobStore",
    "StudyRepository",
    "TransientIOError",
    "UsageAggregate",
    "load_config",
]
