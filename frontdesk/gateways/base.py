"""Base room/booking store interface.

All store adapters must implement this interface.
Availability logic should NOT live in adapters - only store communication.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum
from typing import Any

# One record as kept by the store, always including its "id"
RawRecord = dict[str, Any]
SnapshotCallback = Callable[[list[RawRecord]], None]
Unsubscribe = Callable[[], None]


class StoreType(str, Enum):
    """Supported store backends."""

    REDIS = "redis"
    MEMORY = "memory"


class BookingRepository(ABC):
    """Subscribable booking collection."""

    @abstractmethod
    def subscribe_bookings(self, on_snapshot: SnapshotCallback) -> Unsubscribe:
        """Deliver the full booking list now (if loaded) and after every change.

        Args:
            on_snapshot: Called with every booking record, replacing the last delivery

        Returns:
            Callable that stops further deliveries
        """
        pass

    @abstractmethod
    async def write_booking_status(self, booking_id: str, status: str) -> None:
        """Patch the status field of one booking.

        Raises:
            WriteFailure: If the store rejects the write
        """
        pass


class RoomRepository(ABC):
    """Subscribable room collection."""

    @abstractmethod
    def subscribe_rooms(self, on_snapshot: SnapshotCallback) -> Unsubscribe:
        """Deliver the full room list now (if loaded) and after every change.

        Args:
            on_snapshot: Called with every room record, replacing the last delivery

        Returns:
            Callable that stops further deliveries
        """
        pass

    @abstractmethod
    async def write_room_status(self, room_id: str, status: str) -> None:
        """Patch the status field of one room.

        Raises:
            WriteFailure: If the store rejects the write
        """
        pass
