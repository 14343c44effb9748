"""Room status rules.

States:
- available: No current guest and nothing arriving soon
- reserved: A confirmed booking starts within the lookahead window
- occupied: A confirmed booking is in progress
- maintenance: Set by staff; never changed automatically
"""

from collections.abc import Iterable
from datetime import datetime, timedelta
from enum import Enum


class RoomStatus(str, Enum):
    """Room status values stored on each room."""

    AVAILABLE = "available"
    OCCUPIED = "occupied"
    RESERVED = "reserved"
    MAINTENANCE = "maintenance"


# Higher rank wins when several bookings point at the same room
STATUS_RANK: dict[RoomStatus, int] = {
    RoomStatus.AVAILABLE: 0,
    RoomStatus.RESERVED: 1,
    RoomStatus.OCCUPIED: 2,
    RoomStatus.MAINTENANCE: 3,
}

# Statuses the engine is allowed to write
COMPUTED_STATUSES = frozenset({RoomStatus.AVAILABLE, RoomStatus.RESERVED, RoomStatus.OCCUPIED})


def status_rank(status: RoomStatus) -> int:
    return STATUS_RANK[status]


def resolve_status(candidates: Iterable[RoomStatus]) -> RoomStatus:
    """Pick the highest-ranked status, defaulting to available.

    Args:
        candidates: Statuses suggested by individual bookings

    Returns:
        RoomStatus: The winning status
    """
    return max(candidates, key=status_rank, default=RoomStatus.AVAILABLE)


def status_for_window(
    check_in: datetime,
    check_out: datetime,
    now: datetime,
    lookahead: timedelta,
) -> RoomStatus:
    """Status a single booking window implies for its room at ``now``.

    Args:
        check_in: Booking start (inclusive)
        check_out: Booking end (exclusive)
        now: Instant being evaluated
        lookahead: How far ahead an arrival marks the room reserved

    Returns:
        RoomStatus: occupied, reserved or available
    """
    if check_in <= now < check_out:
        return RoomStatus.OCCUPIED
    if now < check_in <= now + lookahead:
        return RoomStatus.RESERVED
    return RoomStatus.AVAILABLE


def is_sticky(status: RoomStatus) -> bool:
    """Whether a stored status is operator-controlled and must be preserved."""
    return status is RoomStatus.MAINTENANCE
