#!/usr/bin/env python3
"""Seed the Redis store with demo rooms and bookings."""

import asyncio
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from frontdesk.config import settings
from frontdesk.domain.booking_state import SLOT_DURATION
from frontdesk.gateways.redis_store import RedisStore


async def seed_demo(redis_url: str, prefix: str, rooms: int = 6) -> None:
    """Create demo rooms 101.. and a booking in each interesting state."""
    store = RedisStore(redis_url=redis_url, prefix=prefix)
    now = datetime.now(ZoneInfo(settings.hotel_timezone)).replace(second=0, microsecond=0)

    try:
        for i in range(rooms):
            number = str(101 + i)
            await store.put_record(
                "rooms",
                f"room-{number}",
                {"number": number, "status": "available", "type": "standard", "pricePerHour": 500},
            )
        await store.put_record(
            "rooms",
            f"room-{101 + rooms}",
            {"number": str(101 + rooms), "status": "maintenance", "type": "standard"},
        )

        bookings = {
            # In-house guest
            "demo-occupied": ("101", now - timedelta(hours=1), now + timedelta(hours=5), "hourly"),
            # Arrives in 30 minutes
            "demo-reserved": ("102", now + timedelta(minutes=30), now + timedelta(hours=4), "hourly"),
            # Walk-in slot that ended an hour ago
            "demo-expired-slot": ("103", now - SLOT_DURATION - timedelta(hours=1), now - timedelta(hours=1), "slot"),
            # Walk-in slot in progress
            "demo-running-slot": ("104", now - timedelta(hours=1), now - timedelta(hours=1) + SLOT_DURATION, "slot"),
        }
        for booking_id, (room_number, check_in, check_out, booking_type) in bookings.items():
            await store.put_record(
                "bookings",
                booking_id,
                {
                    "roomNumber": room_number,
                    "checkIn": check_in.isoformat(),
                    "checkOut": check_out.isoformat(),
                    "bookingType": booking_type,
                    "status": "confirmed",
                    "guestName": "Demo Guest",
                },
            )

        print(f"Seeded {rooms + 1} rooms and {len(bookings)} bookings under '{prefix}:*'")
    finally:
        await store.close()


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Seed demo rooms and bookings")
    parser.add_argument("--redis-url", default=settings.redis_url, help="Redis connection URL")
    parser.add_argument("--prefix", default=settings.store_prefix, help="Store key prefix")
    parser.add_argument("--rooms", type=int, default=6, help="Number of regular rooms")

    args = parser.parse_args()

    asyncio.run(seed_demo(redis_url=args.redis_url, prefix=args.prefix, rooms=args.rooms))
