"""In-memory store adapter for development and tests."""

import asyncio
from copy import deepcopy

from frontdesk.core.exceptions import WriteFailure
from frontdesk.gateways.base import (
    BookingRepository,
    RawRecord,
    RoomRepository,
    SnapshotCallback,
    Unsubscribe,
)


class InMemoryStore(BookingRepository, RoomRepository):
    """Dict-backed store that behaves like a real-time database.

    Every change is pushed to subscribers as a full collection snapshot. A
    collection passed as ``None`` counts as not loaded yet and is never
    delivered until something is put into it.
    """

    def __init__(
        self,
        rooms: dict[str, dict] | None = None,
        bookings: dict[str, dict] | None = None,
        redeliver_on_write: bool = True,
        write_delay: float = 0.0,
    ) -> None:
        self._collections: dict[str, dict[str, dict] | None] = {
            "rooms": deepcopy(rooms) if rooms is not None else None,
            "bookings": deepcopy(bookings) if bookings is not None else None,
        }
        self._subscribers: dict[str, list[SnapshotCallback]] = {"rooms": [], "bookings": []}
        self.redeliver_on_write = redeliver_on_write
        self.write_delay = write_delay
        self.fail_writes: set[str] = set()
        self.writes: list[tuple[str, str, str]] = []

    # ==================== SUBSCRIPTIONS ====================

    def subscribe_bookings(self, on_snapshot: SnapshotCallback) -> Unsubscribe:
        return self._subscribe("bookings", on_snapshot)

    def subscribe_rooms(self, on_snapshot: SnapshotCallback) -> Unsubscribe:
        return self._subscribe("rooms", on_snapshot)

    def _subscribe(self, collection: str, on_snapshot: SnapshotCallback) -> Unsubscribe:
        self._subscribers[collection].append(on_snapshot)
        if self._collections[collection] is not None:
            on_snapshot(self.records(collection))

        def unsubscribe() -> None:
            if on_snapshot in self._subscribers[collection]:
                self._subscribers[collection].remove(on_snapshot)

        return unsubscribe

    def subscriber_count(self, collection: str) -> int:
        return len(self._subscribers[collection])

    def records(self, collection: str) -> list[RawRecord]:
        """Current records of a collection, each including its id."""
        data = self._collections[collection] or {}
        return [{"id": key, **deepcopy(value)} for key, value in data.items()]

    def _notify(self, collection: str) -> None:
        records = self.records(collection)
        for callback in list(self._subscribers[collection]):
            callback(records)

    # ==================== EXTERNAL CRUD ====================

    def put_room(self, room_id: str, record: dict) -> None:
        self._put("rooms", room_id, record)

    def put_booking(self, booking_id: str, record: dict) -> None:
        self._put("bookings", booking_id, record)

    def delete_booking(self, booking_id: str) -> None:
        bookings = self._collections["bookings"]
        if bookings is not None and booking_id in bookings:
            del bookings[booking_id]
            self._notify("bookings")

    def _put(self, collection: str, record_id: str, record: dict) -> None:
        if self._collections[collection] is None:
            self._collections[collection] = {}
        self._collections[collection][record_id] = deepcopy(record)
        self._notify(collection)

    def get(self, collection: str, record_id: str) -> dict | None:
        data = self._collections[collection] or {}
        record = data.get(record_id)
        return deepcopy(record) if record is not None else None

    # ==================== WRITES ====================

    async def write_booking_status(self, booking_id: str, status: str) -> None:
        await self._write_status("bookings", booking_id, status)

    async def write_room_status(self, room_id: str, status: str) -> None:
        await self._write_status("rooms", room_id, status)

    async def _write_status(self, collection: str, record_id: str, status: str) -> None:
        if self.write_delay:
            await asyncio.sleep(self.write_delay)

        if record_id in self.fail_writes:
            raise WriteFailure(collection, record_id, "write rejected by store")

        data = self._collections[collection]
        if data is None or record_id not in data:
            raise WriteFailure(collection, record_id, "record does not exist")

        data[record_id]["status"] = status
        self.writes.append((collection, record_id, status))

        if self.redeliver_on_write:
            self._notify(collection)
