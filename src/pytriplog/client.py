"""High-level async client for the shared trip log."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Callable
from typing import Any

import aiohttp

from pytriplog import drivers as _drivers
from pytriplog._transport import HttpTransport, Transport
from pytriplog.config import TripLogConfig
from pytriplog.exceptions import (
    InvalidInputError,
    OdometerRegressionError,
    PersistenceError,
    SameDriverError,
    TripRejectedError,
)
from pytriplog.mirror import SheetMirrorReader
from pytriplog.models.decision import DecisionReason, TripDecision
from pytriplog.models.mirror import MirrorReading
from pytriplog.models.trip import TripCandidate, TripEntry
from pytriplog.reconciler import commit_against
from pytriplog.relay import FormRelay
from pytriplog.reporting import default_report_window, rechain, sort_newest_first, totals_by_driver
from pytriplog.store.base import RecordStore
from pytriplog.store.json_file import JsonFileStore
from pytriplog.suggestion import MISSING_KEY_TEXT, NoteSuggester
from pytriplog.validator import validate

_logger = logging.getLogger(__name__)

_REJECTION_ERRORS: dict[DecisionReason, type[TripRejectedError]] = {
    DecisionReason.INVALID_INPUT: InvalidInputError,
    DecisionReason.SAME_DRIVER_LOCAL: SameDriverError,
    DecisionReason.SAME_DRIVER_MIRROR: SameDriverError,
    DecisionReason.ODOMETER_REGRESSION_LOCAL: OdometerRegressionError,
    DecisionReason.ODOMETER_REGRESSION_MIRROR: OdometerRegressionError,
}


def _now_ms() -> int:
    """Current epoch timestamp in milliseconds."""
    return int(time.time() * 1000)


def _new_id() -> str:
    return str(uuid.uuid4())


def rejection_error(decision: TripDecision) -> TripRejectedError:
    return _REJECTION_ERRORS.get(decision.reason, TripRejectedError)(decision)


class TripLog:
    """Async client for the shared trip log.

    Usage::

        async with TripLog(config) as log:
            trip = await log.submit("Alice", "12345", note="Groceries")
            trips = await log.list_trips()

    Submissions are serialised: the store read, the mirror read, the
    validation, the relay and the commit of one submission never
    interleave with another's.
    """

    def __init__(
        self,
        config: TripLogConfig,
        *,
        store: RecordStore | None = None,
        session: aiohttp.ClientSession | None = None,
        mirror: SheetMirrorReader | None = None,
        relay: FormRelay | None = None,
        suggester: NoteSuggester | None = None,
        clock: Callable[[], int] = _now_ms,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._config = config
        self._store: RecordStore = store if store is not None else JsonFileStore(config.store_path)
        self._external_session = session is not None
        self._http_session = session
        self._transport: Transport | None = None
        self._mirror = mirror
        self._relay = relay
        self._suggester = suggester
        self._clock = clock
        self._id_factory = id_factory
        self._lock = asyncio.Lock()
        self._last_mirror: MirrorReading | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> TripLog:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        self._transport = HttpTransport(self._http_session, timeout=self._config.http_timeout)

        if self._mirror is None and self._config.mirror_configured and self._config.sheet_csv_url:
            self._mirror = SheetMirrorReader(self._transport, self._config.sheet_csv_url)
        if self._relay is None and self._config.relay_configured and self._config.form_action_url:
            self._relay = FormRelay(
                self._transport,
                self._config.form_action_url,
                fields=self._config.form_fields,
                time_zone=self._config.time_zone,
            )
        if self._suggester is None:
            self._suggester = NoteSuggester(
                self._transport,
                self._config.gemini_api_key,
                model=self._config.gemini_model,
            )
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._transport = None

    @property
    def store(self) -> RecordStore:
        return self._store

    @property
    def last_mirror_reading(self) -> MirrorReading | None:
        """Mirror reading used by the most recent check or submission."""
        return self._last_mirror

    # ------------------------------------------------------------------
    # Drivers
    # ------------------------------------------------------------------

    def authenticate(self, username: str, pin: str) -> str | None:
        return _drivers.authenticate(self._config, username, pin)

    # ------------------------------------------------------------------
    # Validation and submission
    # ------------------------------------------------------------------

    async def read_mirror(self) -> MirrorReading:
        """Read the mirror's latest row; never raises."""
        if self._mirror is None:
            reading = MirrorReading.unavailable("mirror not configured")
        else:
            reading = await self._mirror.read_latest()
        self._last_mirror = reading
        return reading

    def _candidate(self, driver_name: str, odometer: str | float, note: str | None) -> TripCandidate:
        return TripCandidate(
            driver_name=driver_name,
            odometer=odometer,
            note=note,
            start_time=self._clock(),
        )

    async def check(self, driver_name: str, odometer: str | float) -> TripDecision:
        """Validate without committing (e.g. to preview a rejection)."""
        candidate = self._candidate(driver_name, odometer, None)
        latest_local = await self._store.latest()
        return validate(candidate, latest_local, await self.read_mirror())

    async def _relay_trip(self, driver_name: str, odometer: float, start_time: int) -> None:
        if self._relay is None:
            return
        # Result is only logged; a failed relay never blocks the commit.
        await self._relay.submit(driver_name, odometer, start_time)

    async def submit(self, driver_name: str, odometer: str | float, note: str | None = None) -> TripEntry:
        """Validate and log a trip; return the new open trip.

        Raises
        ------
        TripRejectedError
            A validation rule failed (see ``exc.decision``).
        PersistenceError
            The store write failed; the store is unchanged and the caller
            may resubmit.
        """
        async with self._lock:
            candidate = self._candidate(driver_name, odometer, note)
            latest_local = await self._store.latest()
            mirror = await self.read_mirror()

            decision = validate(candidate, latest_local, mirror)
            if not decision.accepted or decision.odometer is None:
                _logger.info("Rejected trip for %s: %s", candidate.driver_name, decision.reason)
                raise rejection_error(decision)

            await asyncio.gather(
                asyncio.sleep(self._config.submit_min_delay),
                self._relay_trip(candidate.driver_name, decision.odometer, candidate.start_time),
            )

            try:
                entry = await commit_against(
                    candidate,
                    self._store,
                    latest_local,
                    default_note=self._config.default_note,
                    id_factory=self._id_factory,
                )
            except PersistenceError as exc:
                _logger.error("Could not save trip for %s at %s: %s", candidate.driver_name, decision.odometer, exc)
                raise

        _logger.info("Logged trip %s for %s at %s", entry.id, entry.driver_name, entry.start_odometer)
        return entry

    # ------------------------------------------------------------------
    # Reads and reports
    # ------------------------------------------------------------------

    async def latest_trip(self) -> TripEntry | None:
        return await self._store.latest()

    async def list_trips(self, *, repair: bool = False) -> list[TripEntry]:
        """Return all trips, newest first.

        With ``repair=True`` the end fields are recomputed from the
        chronological order instead of trusting the stored values.
        """
        entries = await self._store.all()
        if repair:
            entries = rechain(entries)
        return sort_newest_first(entries)

    async def repair(self) -> list[TripEntry]:
        """Rewrite the store with end fields rebuilt from trip order.

        Reopens the latest trip, which unblocks a store whose last entry
        was saved closed. Returns the repaired trips, oldest first.
        """
        async with self._lock:
            repaired = rechain(await self._store.all())
            await self._store.replace_all(repaired)
        _logger.info("Repaired %d trips", len(repaired))
        return repaired

    async def totals(self, window_start: int | None = None, window_end: int | None = None) -> dict[str, float]:
        """Distance per driver for trips starting in the window.

        Defaults to the current half-month.
        """
        if window_start is None or window_end is None:
            default_start, default_end = default_report_window(time_zone=self._config.time_zone)
            window_start = default_start if window_start is None else window_start
            window_end = default_end if window_end is None else window_end
        return totals_by_driver(await self._store.all(), window_start, window_end)

    async def suggest_note(self, mileage: float) -> str:
        if self._suggester is None:
            return MISSING_KEY_TEXT
        return await self._suggester.suggest(mileage)
