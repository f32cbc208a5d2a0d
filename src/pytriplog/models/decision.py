"""Validation outcome for a submitted trip."""

from __future__ import annotations

from enum import StrEnum

from pytriplog.models._base import TripLogBaseModel


class DecisionReason(StrEnum):
    ACCEPTED = "accepted"
    INVALID_INPUT = "invalid_input"
    SAME_DRIVER_LOCAL = "same_driver_local"
    SAME_DRIVER_MIRROR = "same_driver_mirror"
    ODOMETER_REGRESSION_LOCAL = "odometer_regression_local"
    ODOMETER_REGRESSION_MIRROR = "odometer_regression_mirror"


class TripDecision(TripLogBaseModel):
    """Accept/reject outcome of :func:`pytriplog.validator.validate`.

    Parameters
    ----------
    reason : DecisionReason
        ``ACCEPTED`` or the first rule that failed.
    odometer : float or None
        Parsed candidate reading (``None`` when it did not parse).
    blocking_value : str, float or None
        The recorded value that blocked the candidate: the previous
        driver's name or the higher odometer reading.
    message : str
        Human-readable explanation suitable for display.
    """

    reason: DecisionReason
    odometer: float | None = None
    blocking_value: str | float | None = None
    message: str = ""

    @property
    def accepted(self) -> bool:
        return self.reason == DecisionReason.ACCEPTED
