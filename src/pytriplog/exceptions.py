"""Custom exception hierarchy for pytriplog."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pytriplog.models.decision import TripDecision


class TripLogError(Exception):
    """Base exception for all pytriplog errors."""


class TripLogConfigError(TripLogError):
    """Invalid or missing configuration."""


class TripLogTransportError(TripLogError):
    """HTTP-level failure (network, timeout, non-2xx status)."""

    def __init__(self, message: str, *, status_code: int | None = None, url: str = "") -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class TripRejectedError(TripLogError):
    """A submitted trip failed validation.

    The full :class:`~pytriplog.models.decision.TripDecision` is kept on
    ``decision`` so callers can render the reason and the blocking value.
    Rejections are terminal for the submission and never retried.
    """

    def __init__(self, decision: TripDecision) -> None:
        self.decision = decision
        super().__init__(decision.message)

    @property
    def reason(self) -> str:
        return str(self.decision.reason)

    @property
    def blocking_value(self) -> str | float | None:
        return self.decision.blocking_value


class InvalidInputError(TripRejectedError):
    """Odometer reading is not a finite non-negative number, or the driver is blank."""


class SameDriverError(TripRejectedError):
    """The previous trip (local or mirror) was logged by the same driver."""


class OdometerRegressionError(TripRejectedError):
    """The odometer reading is lower than a previously recorded one."""


class MirrorUnavailableError(TripLogError):
    """The spreadsheet mirror could not be fetched or parsed.

    Never fatal for a submission: the client degrades the mirror checks
    to no-ops instead.
    """

    def __init__(self, message: str, *, status_code: int | None = None, url: str = "") -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class PersistenceError(TripLogError):
    """The record store failed to write; its contents are unchanged."""


class TripConflictError(PersistenceError):
    """The open trip changed between validation and commit.

    Raised by the store's compare-and-swap when another writer closed
    the expected open trip first.
    """

    def __init__(self, message: str, *, expected_id: str | None, actual_id: str | None) -> None:
        self.expected_id = expected_id
        self.actual_id = actual_id
        super().__init__(message)


class RelayError(TripLogError):
    """Outbound form relay failed (logged and discarded by the client)."""
