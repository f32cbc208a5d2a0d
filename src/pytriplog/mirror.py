"""Read-only adapter over the shared spreadsheet mirror."""

from __future__ import annotations

import csv
import logging

from pytriplog._transport import Transport
from pytriplog.exceptions import MirrorUnavailableError, TripLogTransportError
from pytriplog.models.mirror import MirrorReading
from pytriplog.sheets import SheetTable, latest_snapshot, parse_table

_logger = logging.getLogger(__name__)


class SheetMirrorReader:
    """Fetch the mirror's CSV export and expose its latest row.

    :meth:`fetch_table` raises :class:`MirrorUnavailableError`;
    :meth:`read_latest` never raises and degrades to
    ``MirrorReading.unavailable`` instead.
    """

    def __init__(self, transport: Transport, csv_url: str) -> None:
        self._transport = transport
        self._csv_url = csv_url

    @property
    def csv_url(self) -> str:
        return self._csv_url

    async def fetch_table(self) -> SheetTable:
        try:
            text = await self._transport.get_text(self._csv_url)
        except TripLogTransportError as exc:
            raise MirrorUnavailableError(
                f"Could not load sheet data: {exc}",
                status_code=exc.status_code,
                url=self._csv_url,
            ) from exc
        try:
            return parse_table(text)
        except csv.Error as exc:
            raise MirrorUnavailableError(f"Could not parse sheet data: {exc}", url=self._csv_url) from exc

    async def read_latest(self) -> MirrorReading:
        try:
            table = await self.fetch_table()
        except MirrorUnavailableError as exc:
            _logger.warning("Mirror unavailable, skipping sheet checks: %s", exc)
            return MirrorReading.unavailable(str(exc))

        try:
            snapshot = latest_snapshot(table)
        except ValueError as exc:
            # pydantic ValidationError is a ValueError
            _logger.warning("Mirror row unreadable, skipping sheet checks: %s", exc)
            return MirrorReading.unavailable(f"unreadable sheet row: {exc}")
        if snapshot is None:
            return MirrorReading.absent()
        _logger.debug("Mirror latest: %s at %s", snapshot.driver_name, snapshot.odometer)
        return MirrorReading.present(snapshot)
