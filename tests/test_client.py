from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import aiohttp
import pytest

from pytriplog.client import TripLog
from pytriplog.config import TripLogConfig
from pytriplog.exceptions import (
    InvalidInputError,
    OdometerRegressionError,
    PersistenceError,
    SameDriverError,
    TripConflictError,
    TripLogTransportError,
    TripRejectedError,
)
from pytriplog.mirror import SheetMirrorReader
from pytriplog.models.decision import DecisionReason
from pytriplog.models.mirror import MirrorState
from pytriplog.models.trip import TripEntry
from pytriplog.relay import FormRelay
from pytriplog.store.memory import MemoryStore
from pytriplog.suggestion import MISSING_KEY_TEXT

CSV_URL = "https://sheet.example/export.csv"
FORM_URL = "https://form.example/formResponse"
START_MS = 1_700_000_000_000


@dataclass
class FakeGoogleBackend:
    """Serves the mirror CSV and records relay posts."""

    sheet_csv: str = "Timestamp,User Name,Mileage\n"
    sheet_error: bool = False
    relay_error: bool = False
    posts: list[dict[str, str]] = field(default_factory=list)

    async def get_text(self, url: str) -> str:
        assert url == CSV_URL
        if self.sheet_error:
            raise TripLogTransportError("HTTP 503", status_code=503, url=url)
        return self.sheet_csv

    async def post_form(self, url: str, fields: Mapping[str, str]) -> int:
        assert url == FORM_URL
        self.posts.append(dict(fields))
        if self.relay_error:
            raise TripLogTransportError("connection reset", url=url)
        return 200

    async def post_json(self, url: str, payload: Mapping[str, Any], **_: Any) -> dict[str, Any]:  # pragma: no cover
        raise AssertionError("unexpected json post")

    def set_sheet_latest(self, driver: str, mileage: str) -> None:
        self.sheet_csv = f'Timestamp,User Name,Mileage\n"1/1/2024 10:00:00",{driver},"{mileage}"\n'


class FailingStore(MemoryStore):
    async def commit(self, closed: TripEntry | None, opened: TripEntry) -> None:
        raise PersistenceError("table unavailable")


@pytest.fixture
def config() -> TripLogConfig:
    return TripLogConfig(
        drivers={"Alice": "1111", "Bob": "2222"},
        submit_min_delay=0.0,
        time_zone="UTC",
    )


@pytest.fixture
def backend() -> FakeGoogleBackend:
    return FakeGoogleBackend()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


def _make_log(
    config: TripLogConfig,
    backend: FakeGoogleBackend,
    store: MemoryStore,
    *,
    with_mirror: bool = True,
) -> TripLog:
    clock = itertools.count(START_MS, 60_000)
    ids = itertools.count(1)
    return TripLog(
        config,
        store=store,
        mirror=SheetMirrorReader(backend, CSV_URL) if with_mirror else None,
        relay=FormRelay(backend, FORM_URL, time_zone="UTC"),
        clock=lambda: next(clock),
        id_factory=lambda: f"trip-{next(ids)}",
    )


# ------------------------------------------------------------------
# Scenarios
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_first_trip_accepted_into_empty_store(config: TripLogConfig, backend: FakeGoogleBackend, store: MemoryStore) -> None:
    log = _make_log(config, backend, store, with_mirror=False)

    entry = await log.submit("Alice", "100")

    assert entry.start_odometer == 100
    assert entry.is_open
    assert entry.note == "No notes provided"
    assert await store.all() == [entry]
    assert log.last_mirror_reading is not None
    assert log.last_mirror_reading.state == MirrorState.UNAVAILABLE


@pytest.mark.asyncio
async def test_same_driver_twice_rejected(config: TripLogConfig, backend: FakeGoogleBackend, store: MemoryStore) -> None:
    log = _make_log(config, backend, store)
    await log.submit("Alice", 100)

    with pytest.raises(SameDriverError) as exc_info:
        await log.submit("Alice", 150)

    assert exc_info.value.decision.reason == DecisionReason.SAME_DRIVER_LOCAL
    assert exc_info.value.blocking_value == "Alice"
    assert len(await store.all()) == 1


@pytest.mark.asyncio
async def test_lower_reading_rejected(config: TripLogConfig, backend: FakeGoogleBackend, store: MemoryStore) -> None:
    log = _make_log(config, backend, store, with_mirror=False)
    await log.submit("Alice", 100)

    with pytest.raises(OdometerRegressionError) as exc_info:
        await log.submit("Bob", 90)

    assert exc_info.value.reason == DecisionReason.ODOMETER_REGRESSION_LOCAL
    assert exc_info.value.blocking_value == 100
    assert "100" in str(exc_info.value)


@pytest.mark.asyncio
async def test_next_trip_closes_previous(config: TripLogConfig, backend: FakeGoogleBackend, store: MemoryStore) -> None:
    log = _make_log(config, backend, store)
    first = await log.submit("Alice", 100)

    second = await log.submit("Bob", 120, note="Groceries")

    closed = await store.get(first.id)
    assert closed is not None
    assert closed.end_odometer == 120
    assert closed.end_time == second.start_time
    assert closed.distance == 20
    assert second.driver_name == "Bob"
    assert second.start_odometer == 120
    assert second.note == "Groceries"
    assert second.is_open


@pytest.mark.asyncio
async def test_mirror_driver_blocks_even_with_empty_store(
    config: TripLogConfig, backend: FakeGoogleBackend, store: MemoryStore
) -> None:
    backend.set_sheet_latest("Bob", "200")
    log = _make_log(config, backend, store)

    with pytest.raises(SameDriverError) as exc_info:
        await log.submit("Bob", 210)

    assert exc_info.value.decision.reason == DecisionReason.SAME_DRIVER_MIRROR
    assert await store.all() == []
    assert backend.posts == []


@pytest.mark.asyncio
async def test_mirror_reading_blocks_regression(config: TripLogConfig, backend: FakeGoogleBackend, store: MemoryStore) -> None:
    backend.set_sheet_latest("Bob", "12,000")
    log = _make_log(config, backend, store)

    with pytest.raises(OdometerRegressionError) as exc_info:
        await log.submit("Alice", 11_999)

    assert exc_info.value.decision.reason == DecisionReason.ODOMETER_REGRESSION_MIRROR
    assert exc_info.value.blocking_value == 12_000


@pytest.mark.asyncio
async def test_invalid_reading_rejected(config: TripLogConfig, backend: FakeGoogleBackend, store: MemoryStore) -> None:
    log = _make_log(config, backend, store)

    with pytest.raises(InvalidInputError):
        await log.submit("Alice", "twelve")

    assert await store.all() == []


# ------------------------------------------------------------------
# Degraded collaborators
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_unreachable_mirror_does_not_block(config: TripLogConfig, backend: FakeGoogleBackend, store: MemoryStore) -> None:
    backend.sheet_error = True
    log = _make_log(config, backend, store)

    entry = await log.submit("Bob", 210)

    assert entry.start_odometer == 210
    assert log.last_mirror_reading is not None
    assert log.last_mirror_reading.state == MirrorState.UNAVAILABLE


@pytest.mark.asyncio
async def test_relay_receives_trip_and_failure_does_not_abort_commit(
    config: TripLogConfig,
    backend: FakeGoogleBackend,
    store: MemoryStore,
    caplog: pytest.LogCaptureFixture,
) -> None:
    backend.relay_error = True
    log = _make_log(config, backend, store)

    with caplog.at_level(logging.WARNING, logger="pytriplog.relay"):
        entry = await log.submit("Alice", 12345)

    assert await store.all() == [entry]
    assert backend.posts == [
        {
            "entry.765257113": "Alice",
            "entry.1493291277": "12345",
            "entry.656566019": "2023-11-14 22:13",
        }
    ]
    assert "connection reset" in caplog.text


@pytest.mark.asyncio
async def test_placeholder_mirror_driver_does_not_block(
    config: TripLogConfig, backend: FakeGoogleBackend, store: MemoryStore
) -> None:
    backend.set_sheet_latest("--", "100")
    log = _make_log(config, backend, store)

    entry = await log.submit("Alice", 150)

    assert await store.all() == [entry]
    reading = log.last_mirror_reading
    assert reading is not None and reading.snapshot is not None
    assert reading.snapshot.driver_name == "Unknown"


@pytest.mark.asyncio
async def test_relay_with_unknown_time_zone_does_not_abort_commit(
    config: TripLogConfig,
    backend: FakeGoogleBackend,
    store: MemoryStore,
    caplog: pytest.LogCaptureFixture,
) -> None:
    log = TripLog(config, store=store, relay=FormRelay(backend, FORM_URL, time_zone="Mars/Olympus"))

    with caplog.at_level(logging.WARNING, logger="pytriplog.relay"):
        entry = await log.submit("Alice", 150)

    assert await store.all() == [entry]
    assert backend.posts == []
    assert "Unexpected error submitting to form" in caplog.text


@pytest.mark.asyncio
async def test_persistence_failure_is_reported(config: TripLogConfig, backend: FakeGoogleBackend) -> None:
    failing = FailingStore([TripEntry(id="t0", driver_name="Bob", start_odometer=10, start_time=1)])
    log = _make_log(config, backend, failing)

    with pytest.raises(PersistenceError, match="table unavailable"):
        await log.submit("Alice", 20)

    entries = await failing.all()
    assert len(entries) == 1
    assert entries[0].is_open


# ------------------------------------------------------------------
# Concurrency
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_concurrent_same_driver_submissions_accept_only_one(
    backend: FakeGoogleBackend, store: MemoryStore
) -> None:
    config = TripLogConfig(drivers={"Alice": "1", "Bob": "2"}, submit_min_delay=0.01)
    log = _make_log(config, backend, store)

    results = await asyncio.gather(
        log.submit("Alice", 100),
        log.submit("Alice", 110),
        return_exceptions=True,
    )

    accepted = [r for r in results if isinstance(r, TripEntry)]
    rejected = [r for r in results if isinstance(r, TripRejectedError)]
    assert len(accepted) == 1
    assert len(rejected) == 1
    assert rejected[0].decision.reason == DecisionReason.SAME_DRIVER_LOCAL
    assert await store.all() == accepted


@pytest.mark.asyncio
async def test_alternating_concurrent_submissions_form_a_valid_chain(
    config: TripLogConfig, backend: FakeGoogleBackend, store: MemoryStore
) -> None:
    log = _make_log(config, backend, store, with_mirror=False)

    await asyncio.gather(*(log.submit("Alice" if i % 2 == 0 else "Bob", 100 + i * 10) for i in range(6)))

    ordered = list(reversed(await log.list_trips()))
    assert [trip.start_odometer for trip in ordered] == [100, 110, 120, 130, 140, 150]
    for current, following in zip(ordered, ordered[1:]):
        assert current.driver_name != following.driver_name
        assert current.end_odometer == following.start_odometer
        assert current.end_time == following.start_time


# ------------------------------------------------------------------
# Reads, reports and helpers
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_check_does_not_commit(config: TripLogConfig, backend: FakeGoogleBackend, store: MemoryStore) -> None:
    log = _make_log(config, backend, store)

    decision = await log.check("Alice", 100)

    assert decision.accepted
    assert await store.all() == []
    assert backend.posts == []


@pytest.mark.asyncio
async def test_list_and_totals(config: TripLogConfig, backend: FakeGoogleBackend, store: MemoryStore) -> None:
    log = _make_log(config, backend, store, with_mirror=False)
    await log.submit("Alice", 100)
    await log.submit("Bob", 130)
    await log.submit("Alice", 135)

    trips = await log.list_trips()
    assert [trip.driver_name for trip in trips] == ["Alice", "Bob", "Alice"]
    assert (await log.latest_trip()) == trips[0]

    totals = await log.totals(START_MS, START_MS + 3_600_000)
    assert totals == {"Alice": 30, "Bob": 5}

    # A window that ends before the second trip starts.
    assert await log.totals(START_MS, START_MS + 1) == {"Alice": 30}


@pytest.mark.asyncio
async def test_list_trips_repair(config: TripLogConfig, backend: FakeGoogleBackend) -> None:
    store = MemoryStore(
        [
            TripEntry(id="a", driver_name="Alice", start_odometer=100, start_time=1_000),
            TripEntry(id="b", driver_name="Bob", start_odometer=150, start_time=2_000),
        ]
    )
    log = _make_log(config, backend, store)

    repaired = await log.list_trips(repair=True)

    assert [trip.id for trip in repaired] == ["b", "a"]
    assert repaired[1].end_odometer == 150
    assert (await store.get("a")).is_open  # type: ignore[union-attr]


@pytest.mark.asyncio
async def test_repair_unblocks_store_with_closed_latest(config: TripLogConfig, backend: FakeGoogleBackend) -> None:
    store = MemoryStore(
        [
            TripEntry(id="a", driver_name="Alice", start_odometer=100, start_time=1_000),
            TripEntry(
                id="b", driver_name="Bob", start_odometer=150, end_odometer=170, start_time=2_000, end_time=3_000
            ),
        ]
    )
    log = _make_log(config, backend, store)

    with pytest.raises(TripConflictError, match="repair"):
        await log.submit("Alice", 180)

    repaired = await log.repair()

    assert [trip.id for trip in repaired] == ["a", "b"]
    assert repaired[0].end_odometer == 150
    assert repaired[1].is_open
    entry = await log.submit("Alice", 180)
    assert (await store.get("b")).end_odometer == 180  # type: ignore[union-attr]
    assert await store.latest() == entry


def test_authenticate(config: TripLogConfig, backend: FakeGoogleBackend, store: MemoryStore) -> None:
    log = _make_log(config, backend, store)
    assert log.authenticate(" alice ", "1111") == "Alice"
    assert log.authenticate("Alice", "2222") is None
    assert log.authenticate("Carol", "1111") is None


@pytest.mark.asyncio
async def test_context_manager_keeps_external_session_open(config: TripLogConfig, store: MemoryStore) -> None:
    async with aiohttp.ClientSession() as session:
        async with TripLog(config, store=store, session=session) as log:
            reading = await log.read_mirror()
            note = await log.suggest_note(12)
        assert not session.closed

    assert reading.state == MirrorState.UNAVAILABLE
    assert note == MISSING_KEY_TEXT
