"""Booking state machine.

Only the transitions relevant to availability are modelled here; bookings are
created and edited by the front-desk screens, the engine only ever completes
elapsed slot bookings.
"""

from datetime import timedelta
from enum import Enum

from frontdesk.core.exceptions import InvalidBookingTransition


class BookingStatus(str, Enum):
    """Booking lifecycle states."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class BookingType(str, Enum):
    """How a booking is priced and how long it lasts."""

    HOURLY = "hourly"
    DAILY = "daily"
    SLOT = "slot"


# Walk-in slot bookings are always created three hours long
SLOT_DURATION = timedelta(hours=3)

BOOKING_TRANSITIONS = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"completed", "cancelled"},
    "completed": set(),
    "cancelled": set(),
}


def assert_booking_transition(current: str, target: str) -> None:
    allowed = BOOKING_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise InvalidBookingTransition(
            f"Invalid booking transition: {current} → {target}"
        )
