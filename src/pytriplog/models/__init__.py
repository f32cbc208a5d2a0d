"""Data models for trip log records."""

from pytriplog.models._base import TripLogBaseModel
from pytriplog.models.decision import DecisionReason, TripDecision
from pytriplog.models.mirror import MirrorReading, MirrorSnapshot, MirrorState
from pytriplog.models.trip import TripCandidate, TripEntry

__all__ = [
    "DecisionReason",
    "MirrorReading",
    "MirrorSnapshot",
    "MirrorState",
    "TripCandidate",
    "TripDecision",
    "TripEntry",
    "TripLogBaseModel",
]
