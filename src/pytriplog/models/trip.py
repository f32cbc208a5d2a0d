"""Trip entry and submission models."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, field_validator

from pytriplog.models._base import TripLogBaseModel


class TripEntry(TripLogBaseModel):
    """A single logged trip.

    The trip is *open* until the next trip is accepted, at which point
    its end odometer and end time are set to the new trip's start values.
    Legacy records (``userName``/``mileage``/``tripStartDate`` and the
    older ``timestamp`` key) are accepted on load.

    Parameters
    ----------
    id : str
        Opaque unique identifier.
    driver_name : str
        Driver name, stored with its exact case.
    start_odometer : float
        Odometer reading at the start of the trip.
    end_odometer : float or None
        Start odometer of the following trip; ``None`` while open.
    note : str
        Free-text note.
    start_time : int
        Capture instant in epoch milliseconds.
    end_time : int or None
        Start time of the following trip; ``None`` while open.
    """

    id: str
    driver_name: str = Field(
        validation_alias=AliasChoices("driverName", "userName", "driver_name"),
        serialization_alias="driverName",
    )
    start_odometer: float = Field(
        validation_alias=AliasChoices("startOdometer", "mileage", "start_odometer"),
        serialization_alias="startOdometer",
    )
    end_odometer: float | None = Field(
        default=None,
        validation_alias=AliasChoices("endOdometer", "endMileage", "end_odometer"),
        serialization_alias="endOdometer",
    )
    note: str = Field(default="", validation_alias=AliasChoices("note", "message"), serialization_alias="note")
    start_time: int = Field(
        default=0,
        validation_alias=AliasChoices("startTime", "tripStartDate", "timestamp", "start_time"),
        serialization_alias="startTime",
    )
    end_time: int | None = Field(
        default=None,
        validation_alias=AliasChoices("endTime", "tripEndDate", "end_time"),
        serialization_alias="endTime",
    )

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _coerce_epoch_ms(cls, value: object) -> object:
        # Older records stored timestamps as floats or numeric strings.
        if isinstance(value, (float, str)):
            return int(float(value))
        return value

    @property
    def is_open(self) -> bool:
        return self.end_odometer is None

    @property
    def distance(self) -> float:
        """Distance covered; ``0`` while the trip is open."""
        if self.end_odometer is None:
            return 0.0
        return self.end_odometer - self.start_odometer

    def closed(self, end_odometer: float, end_time: int) -> TripEntry:
        """Return a copy of this trip closed at the given reading."""
        return self.model_copy(update={"end_odometer": float(end_odometer), "end_time": int(end_time)})

    def to_record(self) -> dict[str, object]:
        """Serialise with camelCase keys, omitting unset end fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


class TripCandidate(TripLogBaseModel):
    """A trip submitted for validation.

    ``odometer`` keeps the raw user input unchanged (no coercion, so a
    boolean stays a boolean); the validator decides whether it parses.
    """

    driver_name: str = ""
    odometer: Any = ""
    note: str | None = None
    start_time: int = 0
