"""Structural record store interface and shared chaining checks."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from pytriplog.exceptions import PersistenceError, TripConflictError
from pytriplog.models.trip import TripEntry


class RecordStore(Protocol):
    """Persistence collaborator used by the reconciler and the client.

    Having a protocol here makes it easy to pass test doubles while
    keeping the shipped stores concrete.
    """

    async def latest(self) -> TripEntry | None:
        ...

    async def all(self) -> list[TripEntry]:
        ...

    async def get(self, entry_id: str) -> TripEntry | None:
        ...

    async def commit(self, closed: TripEntry | None, opened: TripEntry) -> None:
        ...

    async def replace_all(self, entries: Sequence[TripEntry]) -> None:
        """Overwrite the whole collection (used by repair)."""
        ...


def pick_latest(entries: Sequence[TripEntry]) -> TripEntry | None:
    """Return the entry with the highest ``start_time``.

    Equal start times resolve to the entry persisted last.
    """
    latest: TripEntry | None = None
    for entry in entries:
        if latest is None or entry.start_time >= latest.start_time:
            latest = entry
    return latest


def apply_commit(entries: Sequence[TripEntry], closed: TripEntry | None, opened: TripEntry) -> list[TripEntry]:
    """Return a new entry list with *closed* swapped in and *opened* appended.

    Implements the compare-and-swap on the open trip: *closed* must be a
    closed copy of the current latest entry (or ``None`` for an empty
    store), otherwise :class:`TripConflictError` is raised and *entries*
    is left untouched.

    A store whose latest entry is already closed (for example a legacy
    file saved with an end reading on its last trip) refuses every commit
    until it is rewritten with :func:`pytriplog.reporting.rechain` (see
    :meth:`pytriplog.client.TripLog.repair`).
    """
    current = pick_latest(entries)
    expected_id = closed.id if closed is not None else None
    actual_id = current.id if current is not None else None
    if expected_id != actual_id:
        raise TripConflictError(
            f"open trip changed before commit (expected {expected_id}, found {actual_id})",
            expected_id=expected_id,
            actual_id=actual_id,
        )
    if current is not None and not current.is_open:
        raise TripConflictError(
            f"trip {current.id} is already closed; if no other writer is active, "
            "run TripLog.repair() to rebuild the chain",
            expected_id=expected_id,
            actual_id=actual_id,
        )
    if any(entry.id == opened.id for entry in entries):
        raise PersistenceError(f"duplicate trip id {opened.id}")

    updated = [closed if closed is not None and entry.id == closed.id else entry for entry in entries]
    updated.append(opened)
    return updated
