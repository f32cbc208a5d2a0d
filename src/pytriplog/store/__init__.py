"""Record store layer.

The store is the single source of truth for logged trips. Both the
validator's reads and the reconciler's writes go through it.
"""

from pytriplog.store.base import RecordStore, pick_latest
from pytriplog.store.json_file import JsonFileStore
from pytriplog.store.memory import MemoryStore

__all__ = ["JsonFileStore", "MemoryStore", "RecordStore", "pick_latest"]
