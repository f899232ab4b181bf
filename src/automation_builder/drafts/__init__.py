"""Local draft persistence keyed by flow id."""

from .backends import (
    FileKeyValueStore,
    KeyValueStore,
    MemoryKeyValueStore,
    create_backend,
)
from .store import Draft, DraftStore, create_draft_store, draft_key

__all__ = [
    "FileKeyValueStore",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "create_backend",
    "Draft",
    "DraftStore",
    "create_draft_store",
    "draft_key",
]
