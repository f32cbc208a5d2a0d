"""pytriplog - Async shared-vehicle trip log with alternating drivers."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pytriplog")
except PackageNotFoundError:
    __version__ = "0+local"
from pytriplog.client import TripLog
from pytriplog.config import FormFieldMap, TripLogConfig
from pytriplog.exceptions import (
    InvalidInputError,
    MirrorUnavailableError,
    OdometerRegressionError,
    PersistenceError,
    RelayError,
    SameDriverError,
    TripConflictError,
    TripLogConfigError,
    TripLogError,
    TripLogTransportError,
    TripRejectedError,
)
from pytriplog.models import (
    DecisionReason,
    MirrorReading,
    MirrorSnapshot,
    MirrorState,
    TripCandidate,
    TripDecision,
    TripEntry,
)
from pytriplog.reconciler import commit
from pytriplog.store import JsonFileStore, MemoryStore, RecordStore
from pytriplog.validator import validate

__all__ = [
    "__version__",
    "DecisionReason",
    "FormFieldMap",
    "InvalidInputError",
    "JsonFileStore",
    "MemoryStore",
    "MirrorReading",
    "MirrorSnapshot",
    "MirrorState",
    "MirrorUnavailableError",
    "OdometerRegressionError",
    "PersistenceError",
    "RecordStore",
    "RelayError",
    "SameDriverError",
    "TripCandidate",
    "TripConflictError",
    "TripDecision",
    "TripEntry",
    "TripLog",
    "TripLogConfig",
    "TripLogConfigError",
    "TripLogError",
    "TripLogTransportError",
    "TripRejectedError",
    "commit",
    "validate",
]
