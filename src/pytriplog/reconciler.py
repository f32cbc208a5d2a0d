"""Trip chaining.

The start of a new trip marks the end of the previous one: on commit
the open trip is closed at the new reading and the new trip is appended
as the only open trip.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable

from pytriplog.config import DEFAULT_NOTE
from pytriplog.models.trip import TripCandidate, TripEntry
from pytriplog.store.base import RecordStore
from pytriplog.validator import parse_odometer

_logger = logging.getLogger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


def build_chain(
    candidate: TripCandidate,
    previous: TripEntry | None,
    *,
    default_note: str = DEFAULT_NOTE,
    id_factory: Callable[[], str] = _new_id,
) -> tuple[TripEntry | None, TripEntry]:
    """Return ``(closed_previous, new_open_trip)`` for an accepted candidate.

    Raises :class:`ValueError` when the candidate reading does not parse;
    callers are expected to validate first.
    """
    odometer = parse_odometer(candidate.odometer)
    if odometer is None:
        raise ValueError(f"cannot chain an invalid odometer reading: {candidate.odometer!r}")

    closed = previous.closed(odometer, candidate.start_time) if previous is not None else None
    note = (candidate.note or "").strip() or default_note
    opened = TripEntry(
        id=id_factory(),
        driver_name=candidate.driver_name.strip(),
        start_odometer=odometer,
        note=note,
        start_time=candidate.start_time,
    )
    return closed, opened


async def commit(
    candidate: TripCandidate,
    store: RecordStore,
    *,
    default_note: str = DEFAULT_NOTE,
    id_factory: Callable[[], str] = _new_id,
) -> TripEntry:
    """Close the store's open trip and append *candidate* as the new one.

    Must only be called after :func:`pytriplog.validator.validate`
    accepted the candidate against the same store state. The store
    applies both changes atomically and rejects the write with
    :class:`~pytriplog.exceptions.TripConflictError` when its latest
    entry changed in between.
    """
    previous = await store.latest()
    return await commit_against(candidate, store, previous, default_note=default_note, id_factory=id_factory)


async def commit_against(
    candidate: TripCandidate,
    store: RecordStore,
    previous: TripEntry | None,
    *,
    default_note: str = DEFAULT_NOTE,
    id_factory: Callable[[], str] = _new_id,
) -> TripEntry:
    """Like :func:`commit`, closing *previous* as read during validation.

    The store refuses the write if *previous* is no longer its latest
    entry, so a trip can never be chained onto state it was not
    validated against.
    """
    closed, opened = build_chain(candidate, previous, default_note=default_note, id_factory=id_factory)
    await store.commit(closed, opened)
    if closed is not None:
        _logger.debug(
            "Closed trip %s at %s (distance %s)",
            closed.id,
            closed.end_odometer,
            closed.distance,
        )
    _logger.debug("Opened trip %s for %s at %s", opened.id, opened.driver_name, opened.start_odometer)
    return opened
