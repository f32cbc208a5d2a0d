"""In-memory record store."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from pytriplog.models.trip import TripEntry
from pytriplog.store.base import apply_commit, pick_latest


class MemoryStore:
    """Process-local store; contents are lost when the object goes away."""

    def __init__(self, entries: Iterable[TripEntry] = ()) -> None:
        self._entries: list[TripEntry] = list(entries)

    async def latest(self) -> TripEntry | None:
        return pick_latest(self._entries)

    async def all(self) -> list[TripEntry]:
        return list(self._entries)

    async def get(self, entry_id: str) -> TripEntry | None:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    async def commit(self, closed: TripEntry | None, opened: TripEntry) -> None:
        # Build the new list first so a rejected commit leaves nothing behind.
        self._entries = apply_commit(self._entries, closed, opened)

    async def replace_all(self, entries: Sequence[TripEntry]) -> None:
        self._entries = list(entries)

