"""Read-side distance derivation.

Distances are never stored: a closed trip covers ``end - start`` and an
open trip contributes nothing until the next trip closes it.
"""

from __future__ import annotations

import calendar
from collections.abc import Iterable, Sequence
from datetime import datetime, time, timedelta
from zoneinfo import ZoneInfo

from pytriplog.models.trip import TripEntry


def trip_distance(entry: TripEntry) -> float:
    return entry.distance


def sort_newest_first(entries: Iterable[TripEntry]) -> list[TripEntry]:
    return sorted(entries, key=lambda entry: entry.start_time, reverse=True)


def sort_oldest_first(entries: Iterable[TripEntry]) -> list[TripEntry]:
    return sorted(entries, key=lambda entry: entry.start_time)


def rechain(entries: Sequence[TripEntry]) -> list[TripEntry]:
    """Recompute every trip's end fields from chronological order.

    Each trip ends where the next one starts; the latest trip is left
    open. Returns trips oldest first. Useful for repairing records
    written by tools that did not maintain the chain.
    """
    ordered = sort_oldest_first(entries)
    repaired: list[TripEntry] = []
    for current, following in zip(ordered, ordered[1:]):
        repaired.append(current.closed(following.start_odometer, following.start_time))
    if ordered:
        last = ordered[-1]
        repaired.append(last.model_copy(update={"end_odometer": None, "end_time": None}))
    return repaired


def in_window(entry: TripEntry, window_start: int, window_end: int) -> bool:
    return window_start <= entry.start_time <= window_end


def filter_window(entries: Iterable[TripEntry], window_start: int, window_end: int) -> list[TripEntry]:
    return [entry for entry in entries if in_window(entry, window_start, window_end)]


def totals_by_driver(entries: Iterable[TripEntry], window_start: int, window_end: int) -> dict[str, float]:
    """Sum trip distances per driver for trips starting in the inclusive window."""
    totals: dict[str, float] = {}
    for entry in filter_window(entries, window_start, window_end):
        totals[entry.driver_name] = totals.get(entry.driver_name, 0.0) + trip_distance(entry)
    return totals


def _to_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def default_report_window(now: datetime | None = None, time_zone: str | None = None) -> tuple[int, int]:
    """Return the current half-month as an inclusive epoch-ms window.

    Days 1-15 report the 1st through the 15th; later days report the 15th
    through the last day of the month. Bounds run from ``00:00:00.000``
    on the first day to ``23:59:59.999`` on the last, in local time.
    """
    tz = ZoneInfo(time_zone) if time_zone else None
    if now is None:
        now = datetime.now(tz)
    elif tz is not None:
        now = now.astimezone(tz)
    tzinfo = now.tzinfo

    if now.day <= 15:
        first_day, last_day = 1, 15
    else:
        first_day, last_day = 15, calendar.monthrange(now.year, now.month)[1]

    start = datetime.combine(now.date().replace(day=first_day), time.min, tzinfo=tzinfo)
    end = datetime.combine(now.date().replace(day=last_day), time.min, tzinfo=tzinfo)
    end = end + timedelta(days=1) - timedelta(milliseconds=1)
    return _to_ms(start), _to_ms(end)
