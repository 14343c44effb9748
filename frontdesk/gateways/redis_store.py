"""Redis store adapter.

Layout:
- ``<prefix>:rooms`` / ``<prefix>:bookings``: hashes of record id -> JSON record
- ``<prefix>:changes:<collection>``: pub/sub channel, one message per change

Subscribers reload the whole hash on every change notification, so each
delivery is a complete snapshot.
"""

import asyncio
import json
import logging

import redis.asyncio as redis

from frontdesk.config import settings
from frontdesk.core.exceptions import WriteFailure
from frontdesk.gateways.base import (
    BookingRepository,
    RawRecord,
    RoomRepository,
    SnapshotCallback,
    Unsubscribe,
)

logger = logging.getLogger(__name__)


class RedisStore(BookingRepository, RoomRepository):
    """Room and booking collections kept in Redis hashes."""

    RECONNECT_DELAY = 5.0

    def __init__(
        self,
        redis_url: str | None = None,
        prefix: str | None = None,
        client: redis.Redis | None = None,
    ) -> None:
        """Initialize store.

        Args:
            redis_url: Redis connection URL
            prefix: Key prefix shared by the front-desk application
            client: Pre-built client (skips lazy connection)
        """
        self.redis_url = redis_url or settings.redis_url
        self.prefix = prefix or settings.store_prefix
        self._redis: redis.Redis | None = client
        self._listeners: set[asyncio.Task] = set()

    async def get_redis(self) -> redis.Redis:
        """Get Redis connection."""
        if self._redis is None:
            self._redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
        return self._redis

    async def close(self) -> None:
        """Stop listeners and close the connection."""
        for task in list(self._listeners):
            task.cancel()
        if self._listeners:
            await asyncio.gather(*self._listeners, return_exceptions=True)
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

    def key(self, collection: str) -> str:
        return f"{self.prefix}:{collection}"

    def channel(self, collection: str) -> str:
        return f"{self.prefix}:changes:{collection}"

    # ==================== READS ====================

    async def load(self, collection: str) -> list[RawRecord] | None:
        """Read every record of a collection.

        Returns:
            Records including their id, or None if the collection was never created
        """
        client = await self.get_redis()
        key = self.key(collection)
        if not await client.exists(key):
            return None

        records = []
        for record_id, raw in (await client.hgetall(key)).items():
            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning(f"Skipping undecodable {collection} record '{record_id}'")
                continue
            if not isinstance(data, dict):
                logger.warning(f"Skipping non-object {collection} record '{record_id}'")
                continue
            records.append({**data, "id": record_id})
        return records

    # ==================== SUBSCRIPTIONS ====================

    def subscribe_bookings(self, on_snapshot: SnapshotCallback) -> Unsubscribe:
        return self._subscribe("bookings", on_snapshot)

    def subscribe_rooms(self, on_snapshot: SnapshotCallback) -> Unsubscribe:
        return self._subscribe("rooms", on_snapshot)

    def _subscribe(self, collection: str, on_snapshot: SnapshotCallback) -> Unsubscribe:
        task = asyncio.get_running_loop().create_task(self._listen(collection, on_snapshot))
        self._listeners.add(task)
        task.add_done_callback(self._listeners.discard)
        return task.cancel

    async def _deliver(self, collection: str, on_snapshot: SnapshotCallback) -> None:
        records = await self.load(collection)
        if records is not None:
            on_snapshot(records)

    async def _listen(self, collection: str, on_snapshot: SnapshotCallback) -> None:
        channel = self.channel(collection)
        while True:
            client = await self.get_redis()
            pubsub = client.pubsub()
            try:
                await pubsub.subscribe(channel)
                # Subscribe before the first load so no change slips between them
                await self._deliver(collection, on_snapshot)
                async for message in pubsub.listen():
                    if message.get("type") != "message":
                        continue
                    await self._deliver(collection, on_snapshot)
            except redis.RedisError as e:
                logger.error(f"Redis subscription to {channel} failed: {e}")
            finally:
                await pubsub.aclose()
            await asyncio.sleep(self.RECONNECT_DELAY)

    # ==================== WRITES ====================

    async def put_record(self, collection: str, record_id: str, record: dict) -> None:
        """Create or replace a whole record (used by seeding and external CRUD)."""
        client = await self.get_redis()
        data = {k: v for k, v in record.items() if k != "id"}
        async with client.pipeline(transaction=True) as pipe:
            await pipe.hset(self.key(collection), record_id, json.dumps(data))
            await pipe.publish(self.channel(collection), record_id)
            await pipe.execute()

    async def write_booking_status(self, booking_id: str, status: str) -> None:
        await self._write_status("bookings", booking_id, status)

    async def write_room_status(self, room_id: str, status: str) -> None:
        await self._write_status("rooms", room_id, status)

    async def _write_status(self, collection: str, record_id: str, status: str) -> None:
        """Patch only the status of a stored record.

        The read-modify-write runs under WATCH on the collection hash, so an
        edit made by another client between the read and the write makes the
        transaction retry against the fresh record instead of overwriting it.
        """
        key = self.key(collection)

        async def patch(pipe) -> None:
            raw = await pipe.hget(key, record_id)
            if raw is None:
                raise WriteFailure(collection, record_id, "record does not exist")

            data = json.loads(raw)
            data["status"] = status

            pipe.multi()
            await pipe.hset(key, record_id, json.dumps(data))
            await pipe.publish(self.channel(collection), record_id)

        try:
            client = await self.get_redis()
            await client.transaction(patch, key)
        except redis.RedisError as e:
            raise WriteFailure(collection, record_id, str(e)) from e
        except json.JSONDecodeError as e:
            raise WriteFailure(collection, record_id, f"stored record is not JSON: {e}") from e
