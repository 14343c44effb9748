"""Shared fixtures for availability engine tests."""

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from frontdesk.core.clock import FixedClock
from frontdesk.gateways.memory import InMemoryStore
from frontdesk.services.availability_engine import AvailabilityEngine

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)
LOOKAHEAD = timedelta(hours=2)


def room_record(number: str, status: str = "available", **extra) -> dict:
    """Room as the rooms screen stores it."""
    return {"number": number, "status": status, "type": "deluxe", "floor": 1, **extra}


def booking_record(
    room_number: str,
    check_in: datetime,
    check_out: datetime,
    status: str = "confirmed",
    booking_type: str = "hourly",
    **extra,
) -> dict:
    """Booking as the bookings screen stores it."""
    return {
        "roomNumber": room_number,
        "checkIn": check_in.isoformat(),
        "checkOut": check_out.isoformat(),
        "bookingType": booking_type,
        "status": status,
        "guestName": "Test Guest",
        "totalAmount": 4500,
        **extra,
    }


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def make_store():
    """Build an in-memory store from {id: record} mappings."""

    def _make(rooms: dict | None = None, bookings: dict | None = None, **kwargs) -> InMemoryStore:
        return InMemoryStore(rooms=rooms, bookings=bookings, **kwargs)

    return _make


@pytest.fixture
def make_engine(clock):
    """Build an engine over a store and load the store's current collections."""

    def _make(store: InMemoryStore, load: bool = True) -> AvailabilityEngine:
        engine = AvailabilityEngine(
            bookings=store,
            rooms=store,
            clock=clock,
            reserved_lookahead=LOOKAHEAD,
            tz=UTC,
        )
        if load:
            engine.load_rooms(store.records("rooms"))
            engine.load_bookings(store.records("bookings"))
        return engine

    return _make


async def settle(scheduler) -> None:
    """Let queued feed triggers start, then wait for every tick."""
    for _ in range(5):
        await asyncio.sleep(0)
        await scheduler.wait_idle()
