"""Optimistic concurrency control.

DocumentUpdater applies read-modify-write mutations to stored documents
using conditional writes, retrying lost races with ExponentialBackoff.
"""

from ._backoff import ExponentialBackoff
from ._engine import DocumentUpdater

__all__ = [
    "DocumentUpdater",
    "ExponentialBackoff",
]
