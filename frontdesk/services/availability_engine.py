"""Room availability engine.

Keeps the latest room and booking deliveries in memory and converges the
stored room statuses to what the bookings imply:

- Slot bookings whose window has elapsed are completed and their room freed
- Every other room is set to occupied, reserved or available
- Rooms under maintenance are never touched
"""

import asyncio
import logging
import threading
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, tzinfo
from zoneinfo import ZoneInfo

from frontdesk.config import settings
from frontdesk.core.clock import Clock, SystemClock
from frontdesk.core.exceptions import SnapshotUnavailable, WriteFailure
from frontdesk.domain.booking_state import BookingStatus, assert_booking_transition
from frontdesk.domain.room_state import (
    RoomStatus,
    is_sticky,
    resolve_status,
    status_for_window,
)
from frontdesk.gateways.base import BookingRepository, RawRecord, RoomRepository
from frontdesk.schemas.booking import Booking
from frontdesk.schemas.room import Room
from frontdesk.services.snapshot import Snapshot, parse_bookings, parse_rooms, patch_status

logger = logging.getLogger(__name__)


@dataclass
class TickReport:
    """What one tick (or a single pass) wrote."""

    trigger: str
    evaluated_at: datetime
    expired_bookings: list[str] = field(default_factory=list)
    room_writes: dict[str, RoomStatus] = field(default_factory=dict)
    failed_bookings: list[str] = field(default_factory=list)
    failed_rooms: list[str] = field(default_factory=list)
    skipped: bool = False

    @property
    def write_count(self) -> int:
        """Bookings completed plus rooms whose status was changed."""
        return len(self.expired_bookings) + len(self.room_writes)

    @property
    def failed_writes(self) -> list[str]:
        return [f"bookings/{b}" for b in self.failed_bookings] + [
            f"rooms/{r}" for r in self.failed_rooms
        ]


class AvailabilityEngine:
    """Computes and applies room statuses from the booking feed."""

    def __init__(
        self,
        bookings: BookingRepository,
        rooms: RoomRepository,
        clock: Clock | None = None,
        reserved_lookahead: timedelta | None = None,
        tz: tzinfo | None = None,
    ) -> None:
        """Initialize engine.

        Args:
            bookings: Booking repository (writes booking completion)
            rooms: Room repository (writes room status)
            clock: Time source, defaults to the system clock
            reserved_lookahead: Window in which an arrival marks a room reserved
            tz: Timezone applied to naive booking timestamps
        """
        self.booking_repository = bookings
        self.room_repository = rooms
        self.tz = tz or ZoneInfo(settings.hotel_timezone)
        self.clock = clock or SystemClock(self.tz)
        self.reserved_lookahead = (
            reserved_lookahead
            if reserved_lookahead is not None
            else timedelta(minutes=settings.reserved_lookahead_minutes)
        )
        self._lock = threading.Lock()
        self._rooms: tuple[Room, ...] | None = None
        self._bookings: tuple[Booking, ...] | None = None
        # Bumped on every delivery; own-write patches only apply to the delivery they were computed from
        self._rooms_version = 0
        self._bookings_version = 0
        # (collection, id) -> status being written by some tick
        self._inflight: dict[tuple[str, str], str] = {}

    # ==================== SNAPSHOT ====================

    def load_rooms(self, records: list[RawRecord]) -> None:
        """Replace the room list with a new delivery."""
        rooms = parse_rooms(records)
        with self._lock:
            self._rooms = rooms
            self._rooms_version += 1
        logger.info(f"Loaded {len(rooms)} rooms")

    def load_bookings(self, records: list[RawRecord]) -> None:
        """Replace the booking list with a new delivery."""
        bookings = parse_bookings(records, self.tz)
        with self._lock:
            self._bookings = bookings
            self._bookings_version += 1
        logger.info(f"Loaded {len(bookings)} bookings")

    def clear(self) -> None:
        """Forget both deliveries."""
        with self._lock:
            self._rooms = None
            self._bookings = None
            self._rooms_version += 1
            self._bookings_version += 1

    @property
    def has_snapshot(self) -> bool:
        return self._rooms is not None and self._bookings is not None

    @property
    def snapshot(self) -> Snapshot:
        """Current rooms and bookings, read together.

        Raises:
            SnapshotUnavailable: If either collection has not been delivered
        """
        with self._lock:
            rooms, bookings = self._rooms, self._bookings
            rooms_version, bookings_version = self._rooms_version, self._bookings_version
        missing = [name for name, value in (("rooms", rooms), ("bookings", bookings)) if value is None]
        if missing:
            raise SnapshotUnavailable(missing)
        return Snapshot(
            rooms=rooms,
            bookings=bookings,
            rooms_version=rooms_version,
            bookings_version=bookings_version,
        )

    def _patch_room(self, room_id: str, status: RoomStatus, version: int) -> None:
        with self._lock:
            if self._rooms is None or self._rooms_version != version:
                logger.debug(f"Rooms redelivered during write of {room_id}, keeping the newer delivery")
                return
            self._rooms = patch_status(self._rooms, room_id, status)

    def _patch_booking(self, booking_id: str, status: BookingStatus, version: int) -> None:
        with self._lock:
            if self._bookings is None or self._bookings_version != version:
                logger.debug(f"Bookings redelivered during write of {booking_id}, keeping the newer delivery")
                return
            self._bookings = patch_status(self._bookings, booking_id, status)

    # ==================== STATUS COMPUTATION ====================

    def compute_room_status(
        self,
        room_number: str,
        now: datetime | None = None,
        snapshot: Snapshot | None = None,
    ) -> RoomStatus | None:
        """Status a room should have at ``now``.

        Args:
            room_number: Room number bookings refer to
            now: Instant to evaluate, defaults to the clock
            snapshot: Snapshot to evaluate against, defaults to the current one

        Returns:
            RoomStatus, or None when the stored status must not be changed
        """
        now = now if now is not None else self.clock.now()
        snapshot = snapshot if snapshot is not None else self.snapshot
        room = snapshot.room_by_number(room_number)
        if room is None:
            return self._status_from_bookings(snapshot.confirmed_bookings_for(room_number), now)
        return self._status_for_room(room, snapshot, now)

    def _status_for_room(self, room: Room, snapshot: Snapshot, now: datetime) -> RoomStatus | None:
        if is_sticky(room.status):
            return None
        return self._status_from_bookings(snapshot.confirmed_bookings_for(room.number), now)

    def _status_from_bookings(self, bookings: list[Booking], now: datetime) -> RoomStatus:
        candidates = []
        for booking in bookings:
            status = status_for_window(booking.check_in, booking.check_out, now, self.reserved_lookahead)
            if status is RoomStatus.OCCUPIED:
                return status
            candidates.append(status)
        return resolve_status(candidates)

    # ==================== WRITES ====================

    async def _write(
        self,
        collection: str,
        record_id: str,
        status: str,
        write: Callable[[str, str], Awaitable[None]],
    ) -> bool | None:
        """Issue one status write, never raising.

        Returns:
            True on success, False on failure, None if an identical write
            from an overlapping tick is still in flight
        """
        key = (collection, record_id)
        if self._inflight.get(key) == status:
            logger.debug(f"Write {collection}/{record_id} → {status} already in flight")
            return None

        self._inflight[key] = status
        try:
            await write(record_id, status)
        except WriteFailure as e:
            logger.error(f"Error updating {collection} status: {e.detail}")
            return False
        except Exception as e:
            logger.exception(f"Unexpected error updating {collection}/{record_id} status: {e}")
            return False
        finally:
            if self._inflight.get(key) == status:
                del self._inflight[key]
        return True

    async def _write_room(self, room: Room, status: RoomStatus, report: TickReport, version: int) -> bool:
        result = await self._write("rooms", room.id, status.value, self.room_repository.write_room_status)
        if result is False:
            report.failed_rooms.append(room.id)
            return False
        if result:
            self._patch_room(room.id, status, version)
            report.room_writes[room.id] = status
            logger.info(f"Room {room.number} status updated to: {status.value}")
        return True

    async def _complete_booking(self, booking: Booking, report: TickReport, version: int) -> bool:
        assert_booking_transition(booking.status.value, BookingStatus.COMPLETED.value)
        result = await self._write(
            "bookings",
            booking.id,
            BookingStatus.COMPLETED.value,
            self.booking_repository.write_booking_status,
        )
        if result is False:
            report.failed_bookings.append(booking.id)
            return False
        if result:
            self._patch_booking(booking.id, BookingStatus.COMPLETED, version)
            report.expired_bookings.append(booking.id)
            logger.info(f"Booking {booking.id} marked as completed")
        return True

    # ==================== PASSES ====================

    async def expire_slot_bookings(
        self,
        now: datetime | None = None,
        snapshot: Snapshot | None = None,
        report: TickReport | None = None,
    ) -> Snapshot:
        """Complete elapsed slot bookings and free their rooms.

        Args:
            now: Instant to evaluate, defaults to the clock
            snapshot: Snapshot to work on, defaults to the current one
            report: Report to record writes in

        Returns:
            Snapshot: The input snapshot with this pass's successful writes applied
        """
        now = now if now is not None else self.clock.now()
        snapshot = snapshot if snapshot is not None else self.snapshot
        report = report if report is not None else TickReport(trigger="expiry", evaluated_at=now)

        for booking in snapshot.expired_slot_bookings(now):
            logger.info(
                f"3-hour slot expired for room {booking.room_number} at {booking.check_out.isoformat()}"
            )
            if await self._complete_booking(booking, report, snapshot.bookings_version):
                snapshot = snapshot.with_booking_status(booking.id, BookingStatus.COMPLETED)

            room = snapshot.room_by_number(booking.room_number)
            if room is None:
                logger.warning(f"Expired booking {booking.id} refers to unknown room {booking.room_number}")
                continue
            if room.status is not RoomStatus.OCCUPIED:
                continue

            logger.info(f"Auto-releasing room {room.number} after slot completion")
            if await self._write_room(room, RoomStatus.AVAILABLE, report, snapshot.rooms_version):
                snapshot = snapshot.with_room_status(room.id, RoomStatus.AVAILABLE)

        return snapshot

    async def reconcile(
        self,
        now: datetime | None = None,
        snapshot: Snapshot | None = None,
        report: TickReport | None = None,
    ) -> TickReport:
        """Write the computed status of every room that differs from its stored one.

        Rooms whose write already failed in ``report`` are left for the next tick.
        """
        now = now if now is not None else self.clock.now()
        snapshot = snapshot if snapshot is not None else self.snapshot
        report = report if report is not None else TickReport(trigger="reconcile", evaluated_at=now)

        changes = []
        for room in snapshot.rooms:
            if room.id in report.failed_rooms:
                continue
            target = self._status_for_room(room, snapshot, now)
            if target is None or target is room.status:
                continue
            logger.info(f"Updating room {room.number}: {room.status.value} → {target.value}")
            changes.append((room, target))

        await asyncio.gather(
            *(self._write_room(room, target, report, snapshot.rooms_version) for room, target in changes)
        )
        return report

    async def run_tick(self, trigger: str = "manual") -> TickReport:
        """Expire slot bookings, then reconcile every room.

        A tick without a complete snapshot does nothing.
        """
        now = self.clock.now()
        report = TickReport(trigger=trigger, evaluated_at=now)
        try:
            snapshot = self.snapshot
        except SnapshotUnavailable as e:
            logger.debug(f"Skipping {trigger} status check: {e.detail}")
            report.skipped = True
            return report

        logger.info(f"Checking room statuses at {now.isoformat()} (trigger: {trigger})")
        snapshot = await self.expire_slot_bookings(now, snapshot, report)
        await self.reconcile(now, snapshot, report)

        if report.failed_writes:
            logger.warning(
                f"Status check finished with {len(report.failed_writes)} failed write(s): "
                f"{', '.join(report.failed_writes)}"
            )
        return report

    # ==================== READ MODELS ====================

    def room_status_summary(self) -> dict[str, int]:
        """Count rooms per stored status."""
        with self._lock:
            rooms = self._rooms
        if rooms is None:
            raise SnapshotUnavailable(["rooms"])

        summary = {status.value: 0 for status in RoomStatus}
        for room in rooms:
            summary[room.status.value] += 1
        summary["total"] = len(rooms)
        return summary

    def _confirmed_bookings(self) -> tuple[Booking, ...]:
        with self._lock:
            bookings = self._bookings
        if bookings is None:
            raise SnapshotUnavailable(["bookings"])
        return tuple(b for b in bookings if b.is_confirmed)

    def upcoming_checkins(self, now: datetime | None = None) -> list[Booking]:
        """Confirmed arrivals within the lookahead window, earliest first."""
        now = now if now is not None else self.clock.now()
        horizon = now + self.reserved_lookahead
        return sorted(
            (b for b in self._confirmed_bookings() if now < b.check_in <= horizon),
            key=lambda b: b.check_in,
        )

    def upcoming_checkouts(self, now: datetime | None = None) -> list[Booking]:
        """Confirmed departures within the lookahead window, earliest first."""
        now = now if now is not None else self.clock.now()
        horizon = now + self.reserved_lookahead
        return sorted(
            (b for b in self._confirmed_bookings() if now < b.check_out <= horizon),
            key=lambda b: b.check_out,
        )
