"""Blob store clients.

This package provides the key-addressed object store layer that documents
are persisted to.

Classes:
    BlobStore: Runtime-checkable protocol every backend satisfies.
    Blob: A payload together with the version it was read at.
    MemoryBlobStore: In-process backend for tests and local development.
    HttpBlobStore: S3-compatible HTTP backend with If-Match writes.
    BlobCall: Call log entry recorded by MemoryBlobStore.

Functions:
    create_blob_store: Build the backend named by a StoreConfiguration.

Example:
    >>> from deckstore.blob import MemoryBlobStore
    >>> store = MemoryBlobStore()
    >>> version = await store.put("collections/u1/c1.json", b"{}")
    >>> await store.put("collections/u1/c1.json", b"{}", expected_version=version)
"""

from ._factory import create_blob_store
from ._http import HttpBlobStore, parse_list_objects
from ._memory import BlobCall, MemoryBlobStore
from ._protocol import Blob, BlobStore

__all__ = [
    "Blob",
    "BlobCall",
    "BlobStore",
    "HttpBlobStore",
    "MemoryBlobStore",
    "create_blob_store",
    "parse_list_objects",
]
