"""Trip validation rules.

This module is pure: it never touches the store or the network. The
caller supplies the latest local entry and the mirror reading; the
rules below are applied in a fixed order and the first failure wins.

1. the reading must be a finite, non-negative number
2. the latest local trip must be by another driver
3. the latest mirror row must be by another driver
4. the reading must not be lower than the latest local start reading
5. the reading must not be lower than the latest mirror reading
"""

from __future__ import annotations

import math
from typing import Any

from pytriplog.models.decision import DecisionReason, TripDecision
from pytriplog.models.mirror import MirrorReading, MirrorState
from pytriplog.models.trip import TripCandidate, TripEntry


def parse_odometer(value: Any) -> float | None:
    """Parse a user-entered reading; ``None`` unless finite and >= 0."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(result) or result < 0:
        return None
    return result


def same_driver(left: str, right: str) -> bool:
    return left.strip().casefold() == right.strip().casefold()


def _format_miles(value: float) -> str:
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,}"


def validate(
    candidate: TripCandidate,
    latest_local: TripEntry | None,
    latest_mirror: MirrorReading | None,
) -> TripDecision:
    """Decide whether *candidate* may be logged.

    ``latest_mirror`` may be ``None`` or an ``absent``/``unavailable``
    reading, in which case the mirror rules are skipped.
    """
    odometer = parse_odometer(candidate.odometer)
    if odometer is None:
        return TripDecision(
            reason=DecisionReason.INVALID_INPUT,
            blocking_value=str(candidate.odometer),
            message="Please enter a valid mileage number.",
        )
    if not candidate.driver_name.strip():
        return TripDecision(
            reason=DecisionReason.INVALID_INPUT,
            odometer=odometer,
            message="A driver name is required.",
        )

    mirror = None
    if latest_mirror is not None and latest_mirror.state == MirrorState.PRESENT:
        mirror = latest_mirror.snapshot

    if latest_local is not None and same_driver(latest_local.driver_name, candidate.driver_name):
        return TripDecision(
            reason=DecisionReason.SAME_DRIVER_LOCAL,
            odometer=odometer,
            blocking_value=latest_local.driver_name,
            message=(
                "Alternate driver required (Local Check). "
                f"The last trip was logged by you ({latest_local.driver_name})."
            ),
        )

    if mirror is not None and same_driver(mirror.driver_name, candidate.driver_name):
        return TripDecision(
            reason=DecisionReason.SAME_DRIVER_MIRROR,
            odometer=odometer,
            blocking_value=mirror.driver_name,
            message=(
                "Alternate driver required (Sheet Check). "
                f"The last entry in the sheet was also by {mirror.driver_name}. "
                "Please wait for the other driver."
            ),
        )

    if latest_local is not None and odometer < latest_local.start_odometer:
        return TripDecision(
            reason=DecisionReason.ODOMETER_REGRESSION_LOCAL,
            odometer=odometer,
            blocking_value=latest_local.start_odometer,
            message=(
                "Mileage cannot be lower than the previous record "
                f"({_format_miles(latest_local.start_odometer)} miles)."
            ),
        )

    if mirror is not None and mirror.odometer is not None and odometer < mirror.odometer:
        return TripDecision(
            reason=DecisionReason.ODOMETER_REGRESSION_MIRROR,
            odometer=odometer,
            blocking_value=mirror.odometer,
            message=f"Mileage cannot be lower than the sheet record ({_format_miles(mirror.odometer)} miles).",
        )

    return TripDecision(reason=DecisionReason.ACCEPTED, odometer=odometer, message="Trip accepted.")
