"""Spreadsheet mirror models."""

from __future__ import annotations

from enum import StrEnum

from pytriplog.models._base import TripLogBaseModel


class MirrorSnapshot(TripLogBaseModel):
    """Last reading found in the spreadsheet mirror.

    ``odometer`` is ``None`` when the mileage cell is not numeric.
    """

    driver_name: str
    odometer: float | None = None


class MirrorState(StrEnum):
    PRESENT = "present"
    ABSENT = "absent"
    UNAVAILABLE = "unavailable"


class MirrorReading(TripLogBaseModel):
    """Tagged mirror lookup result threaded through validation.

    * ``present``: the sheet has a latest row (``snapshot`` is set).
    * ``absent``: the sheet was read but holds no data rows.
    * ``unavailable``: fetch/parse failed or the mirror is disabled;
      mirror checks are skipped.
    """

    state: MirrorState
    snapshot: MirrorSnapshot | None = None
    reason: str | None = None

    @classmethod
    def present(cls, snapshot: MirrorSnapshot) -> MirrorReading:
        return cls(state=MirrorState.PRESENT, snapshot=snapshot)

    @classmethod
    def absent(cls) -> MirrorReading:
        return cls(state=MirrorState.ABSENT)

    @classmethod
    def unavailable(cls, reason: str) -> MirrorReading:
        return cls(state=MirrorState.UNAVAILABLE, reason=reason)

    @property
    def is_available(self) -> bool:
        return self.state != MirrorState.UNAVAILABLE
