"""Pydantic schemas for feed records and API responses."""

from frontdesk.schemas.availability import (
    RoomAvailabilityResponse,
    RoomStatusSummary,
    TickReportResponse,
    UpcomingResponse,
)
from frontdesk.schemas.booking import Booking, UpcomingBooking
from frontdesk.schemas.room import Room

__all__ = [
    "Booking",
    "Room",
    "RoomAvailabilityResponse",
    "RoomStatusSummary",
    "TickReportResponse",
    "UpcomingBooking",
    "UpcomingResponse",
]
