"""Outbound form relay.

Accepted trips are forwarded to a shared response form that feeds the
spreadsheet mirror. The relay is fire-and-forget: the response is not
inspected and failures never abort a commit.
"""

from __future__ import annotations

import logging
from datetime import datetime
from zoneinfo import ZoneInfo

from pytriplog._transport import Transport
from pytriplog.config import FormFieldMap
from pytriplog.exceptions import RelayError, TripLogTransportError

_logger = logging.getLogger(__name__)


def format_local_timestamp(epoch_ms: int, time_zone: str | None = None) -> str:
    """Format an epoch-ms instant as ``YYYY-MM-DD HH:MM`` in local time."""
    tz = ZoneInfo(time_zone) if time_zone else None
    moment = datetime.fromtimestamp(epoch_ms / 1000, tz=tz)
    return moment.strftime("%Y-%m-%d %H:%M")


def _format_mileage(odometer: float) -> str:
    return str(int(odometer)) if float(odometer).is_integer() else str(odometer)


class FormRelay:
    """Posts ``{driver, mileage, timestamp}`` to a form action URL."""

    def __init__(
        self,
        transport: Transport,
        action_url: str,
        *,
        fields: FormFieldMap | None = None,
        time_zone: str | None = None,
    ) -> None:
        self._transport = transport
        self._action_url = action_url
        self._fields = fields or FormFieldMap()
        self._time_zone = time_zone

    def build_fields(self, driver_name: str, odometer: float, epoch_ms: int) -> dict[str, str]:
        return {
            self._fields.driver_name: driver_name,
            self._fields.mileage: _format_mileage(odometer),
            self._fields.timestamp: format_local_timestamp(epoch_ms, self._time_zone),
        }

    async def send(self, driver_name: str, odometer: float, epoch_ms: int) -> None:
        """Submit the trip; raises :class:`RelayError` on transport failure."""
        fields = self.build_fields(driver_name, odometer, epoch_ms)
        try:
            status = await self._transport.post_form(self._action_url, fields)
        except TripLogTransportError as exc:
            raise RelayError(f"Error submitting to form: {exc}") from exc
        _logger.debug("Relay answered HTTP %s (not inspected)", status)

    async def submit(self, driver_name: str, odometer: float, epoch_ms: int) -> bool:
        """Fire-and-forget variant of :meth:`send`; returns ``False`` on failure."""
        try:
            await self.send(driver_name, odometer, epoch_ms)
        except RelayError as exc:
            _logger.warning("%s", exc)
            return False
        except Exception:
            _logger.exception("Unexpected error submitting to form")
            return False
        return True
