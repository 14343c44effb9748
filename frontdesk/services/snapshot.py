"""Immutable room/booking snapshot and record parsing."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import datetime, tzinfo
from functools import cached_property
from typing import TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from frontdesk.core.exceptions import MalformedRecord
from frontdesk.domain.booking_state import BookingStatus, BookingType
from frontdesk.domain.room_state import RoomStatus
from frontdesk.gateways.base import RawRecord
from frontdesk.schemas.booking import Booking
from frontdesk.schemas.room import Room

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


def _record_id(record: object) -> str | None:
    if isinstance(record, dict) and record.get("id") is not None:
        return str(record["id"])
    return None


def parse_room(record: RawRecord) -> Room:
    """Validate one raw room record.

    Raises:
        MalformedRecord: If required fields are missing or invalid
    """
    try:
        return Room.model_validate(record)
    except PydanticValidationError as e:
        raise MalformedRecord("room", _record_id(record), errors=e.errors(include_url=False)) from e


def parse_booking(record: RawRecord, tz: tzinfo | None = None) -> Booking:
    """Validate one raw booking record.

    Args:
        record: Record as stored, camelCase keys
        tz: Timezone for check-in/check-out values without an offset

    Raises:
        MalformedRecord: If fields are missing/invalid or checkOut <= checkIn
    """
    try:
        return Booking.model_validate(record, context={"tz": tz})
    except PydanticValidationError as e:
        raise MalformedRecord("booking", _record_id(record), errors=e.errors(include_url=False)) from e


def parse_rooms(records: Iterable[RawRecord]) -> tuple[Room, ...]:
    """Validate a room delivery, skipping malformed records."""
    rooms = []
    for record in records:
        try:
            rooms.append(parse_room(record))
        except MalformedRecord as e:
            logger.warning(f"Skipping room record: {e.detail}")
    return tuple(rooms)


def parse_bookings(records: Iterable[RawRecord], tz: tzinfo | None = None) -> tuple[Booking, ...]:
    """Validate a booking delivery, skipping malformed records."""
    bookings = []
    for record in records:
        try:
            bookings.append(parse_booking(record, tz))
        except MalformedRecord as e:
            logger.warning(f"Skipping booking record: {e.detail}")
    return tuple(bookings)


def patch_status(
    records: tuple[RecordT, ...],
    record_id: str,
    status: RoomStatus | BookingStatus,
) -> tuple[RecordT, ...]:
    """Copy of ``records`` with one record's status replaced."""
    return tuple(
        r.model_copy(update={"status": status}) if r.id == record_id else r
        for r in records
    )


@dataclass(frozen=True)
class Snapshot:
    """Rooms and bookings as of one delivery (plus the engine's own writes)."""

    rooms: tuple[Room, ...]
    bookings: tuple[Booking, ...]
    # Engine delivery counters when the snapshot was taken
    rooms_version: int = 0
    bookings_version: int = 0

    @cached_property
    def _confirmed_by_room(self) -> dict[str, list[Booking]]:
        index: dict[str, list[Booking]] = {}
        for booking in self.bookings:
            if booking.is_confirmed:
                index.setdefault(booking.room_number, []).append(booking)
        return index

    def room_by_number(self, number: str) -> Room | None:
        for room in self.rooms:
            if room.number == number:
                return room
        return None

    def confirmed_bookings_for(self, room_number: str) -> list[Booking]:
        return self._confirmed_by_room.get(room_number, [])

    def expired_slot_bookings(self, now: datetime) -> list[Booking]:
        """Confirmed slot bookings whose window has fully elapsed."""
        return [
            b
            for b in self.bookings
            if b.is_confirmed and b.booking_type is BookingType.SLOT and b.check_out <= now
        ]

    def with_room_status(self, room_id: str, status: RoomStatus) -> "Snapshot":
        return replace(self, rooms=patch_status(self.rooms, room_id, status))

    def with_booking_status(self, booking_id: str, status: BookingStatus) -> "Snapshot":
        return replace(self, bookings=patch_status(self.bookings, booking_id, status))
