"""Adapters layer - collaborators the search core talks to.

Each collaborator has an abstract interface plus an in-memory fake:
- document_store: generic predicate queries over raw documents
- kv_store: persistent string key-value storage
"""

from .document_store import AbstractDocumentStore, InMemoryDocumentStore
from .kv_store import AbstractKeyValueStore, FileKeyValueStore, InMemoryKeyValueStore


__all__ = [
    "AbstractDocumentStore",
    "AbstractKeyValueStore",
    "FileKeyValueStore",
    "InMemoryDocumentStore",
    "InMemoryKeyValueStore",
]
