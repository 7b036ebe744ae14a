"""Persisted review state: storage media, models and the layered cache."""

from daily_review.cache.storage import FileStorage, MemoryStorage, StorageBackend
from daily_review.cache.store import ReviewCache
from daily_review.cache.types import (
    SCHEMA_VERSION,
    BatchState,
    Deck,
    DeckStore,
    History,
    HistoryEntry,
    PoolRecord,
    Settings,
)

__all__ = [
    "SCHEMA_VERSION",
    "BatchState",
    "Deck",
    "DeckStore",
    "FileStorage",
    "History",
    "HistoryEntry",
    "MemoryStorage",
    "PoolRecord",
    "ReviewCache",
    "Settings",
    "StorageBackend",
]
