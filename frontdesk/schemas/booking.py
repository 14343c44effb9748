"""Booking record schema as delivered by the booking feed."""

from datetime import UTC, datetime, tzinfo

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator

from frontdesk.domain.booking_state import BookingStatus, BookingType


class Booking(BaseModel):
    """Booking fields the availability engine reads.

    The front-desk screens store camelCase keys; everything else on the record
    (guest, payment, pricing) is ignored here.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        frozen=True,
        coerce_numbers_to_str=True,
    )

    id: str = Field(..., min_length=1)
    room_number: str = Field(..., alias="roomNumber", min_length=1)
    check_in: datetime = Field(..., alias="checkIn")
    check_out: datetime = Field(..., alias="checkOut")
    booking_type: BookingType = Field(default=BookingType.HOURLY, alias="bookingType")
    status: BookingStatus

    @field_validator("check_in", "check_out")
    @classmethod
    def attach_timezone(cls, v: datetime, info: ValidationInfo) -> datetime:
        # datetime-local inputs arrive without an offset
        if v.tzinfo is None:
            tz: tzinfo = (info.context or {}).get("tz") or UTC
            return v.replace(tzinfo=tz)
        return v

    @model_validator(mode="after")
    def validate_window(self) -> "Booking":
        if self.check_out <= self.check_in:
            raise ValueError("checkOut must be after checkIn")
        return self

    @property
    def duration_hours(self) -> float:
        """Length of the booked window in hours."""
        return (self.check_out - self.check_in).total_seconds() / 3600

    @property
    def is_confirmed(self) -> bool:
        return self.status is BookingStatus.CONFIRMED


class UpcomingBooking(BaseModel):
    """Booking arriving or leaving within the lookahead window."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    room_number: str
    check_in: datetime
    check_out: datetime
    booking_type: BookingType
