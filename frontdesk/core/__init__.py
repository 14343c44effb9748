"""Core utilities: clock, scheduler and exceptions."""

from frontdesk.core.clock import Clock, FixedClock, SystemClock
from frontdesk.core.exceptions import (
    AppException,
    InvalidBookingTransition,
    MalformedRecord,
    NotFoundError,
    SnapshotUnavailable,
    ValidationError,
    WriteFailure,
)

__all__ = [
    "AppException",
    "Clock",
    "FixedClock",
    "InvalidBookingTransition",
    "MalformedRecord",
    "NotFoundError",
    "SnapshotUnavailable",
    "SystemClock",
    "ValidationError",
    "WriteFailure",
]
