"""Availability API schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from frontdesk.domain.room_state import RoomStatus
from frontdesk.schemas.booking import UpcomingBooking


class RoomStatusSummary(BaseModel):
    """Count of rooms per stored status."""

    available: int = 0
    occupied: int = 0
    reserved: int = 0
    maintenance: int = 0
    total: int = 0


class RoomAvailabilityResponse(BaseModel):
    """Stored versus computed status for one room."""

    room_id: str
    number: str
    stored_status: RoomStatus
    computed_status: RoomStatus | None = Field(
        None, description="None when the stored status is operator-controlled"
    )
    in_sync: bool
    evaluated_at: datetime


class UpcomingResponse(BaseModel):
    """Arrivals and departures within the lookahead window."""

    checkins: list[UpcomingBooking]
    checkouts: list[UpcomingBooking]
    window_minutes: int
    evaluated_at: datetime


class TickReportResponse(BaseModel):
    """Outcome of one expiry + reconciliation tick."""

    trigger: str
    evaluated_at: datetime
    expired_bookings: list[str]
    room_writes: dict[str, RoomStatus]
    failed_writes: list[str]
