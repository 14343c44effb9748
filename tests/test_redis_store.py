"""Redis store adapter against a minimal in-process client double."""

import asyncio
import json

import pytest
import redis.asyncio as redis

from frontdesk.core.exceptions import WriteFailure
from frontdesk.gateways.redis_store import RedisStore


class FakePubSub:
    def __init__(self, client: "FakeRedis") -> None:
        self.client = client
        self.channels: set[str] = set()
        self.queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    async def subscribe(self, channel):
        self.client.subscribe_attempts += 1
        if self.client.pubsub_failures:
            self.client.pubsub_failures -= 1
            raise redis.ConnectionError("connection reset")
        self.channels.add(channel)
        await self.queue.put({"type": "subscribe", "channel": channel, "data": 1})

    async def listen(self):
        while True:
            yield await self.queue.get()

    async def aclose(self):
        self.closed = True


class FakePipeline:
    """Buffers commands; with WATCH, reads run immediately until ``multi()``."""

    def __init__(self, client: "FakeRedis") -> None:
        self.client = client
        self.queued: list[tuple] = []
        self.watched: dict[str, int] = {}
        self.buffering = True

    async def __aenter__(self) -> "FakePipeline":
        return self

    async def __aexit__(self, *exc) -> None:
        self.watched = {}

    async def watch(self, *keys):
        self.watched = {key: self.client.revisions.get(key, 0) for key in keys}
        self.buffering = False

    def multi(self):
        self.buffering = True

    async def hget(self, key, field):
        value = await self.client.hget(key, field)
        if self.client.on_watched_read is not None:
            hook, self.client.on_watched_read = self.client.on_watched_read, None
            hook()
        return value

    async def hset(self, key, field, value):
        self.queued.append(("hset", key, field, value))
        return self

    async def publish(self, channel, message):
        self.queued.append(("publish", channel, message))
        return self

    async def execute(self):
        queued, self.queued = self.queued, []
        if any(self.client.revisions.get(key, 0) != rev for key, rev in self.watched.items()):
            self.watched = {}
            raise redis.WatchError("Watched variable changed.")
        self.watched = {}
        for op in queued:
            if op[0] == "hset":
                self.client.store_field(op[1], op[2], op[3])
            else:
                self.client.deliver(op[1], op[2])
        return [1] * len(queued)


class FakeRedis:
    def __init__(self, hashes: dict | None = None, fail: bool = False) -> None:
        self.hashes = hashes or {}
        self.revisions: dict[str, int] = {}
        self.published: list[tuple[str, str]] = []
        self.pubsubs: list[FakePubSub] = []
        self.fail = fail
        self.pubsub_failures = 0
        self.subscribe_attempts = 0
        self.transaction_attempts = 0
        self.on_watched_read = None
        self.closed = False

    def store_field(self, key, field, value):
        self.hashes.setdefault(key, {})[field] = value
        self.revisions[key] = self.revisions.get(key, 0) + 1

    def deliver(self, channel, message):
        self.published.append((channel, message))
        for pubsub in self.pubsubs:
            if channel in pubsub.channels and not pubsub.closed:
                pubsub.queue.put_nowait({"type": "message", "channel": channel, "data": message})

    async def exists(self, key):
        return int(key in self.hashes)

    async def hgetall(self, key):
        return dict(self.hashes.get(key, {}))

    async def hget(self, key, field):
        if self.fail:
            raise redis.ConnectionError("connection refused")
        return self.hashes.get(key, {}).get(field)

    def pipeline(self, transaction=True):
        return FakePipeline(self)

    async def transaction(self, func, *watches):
        async with self.pipeline(True) as pipe:
            while True:
                self.transaction_attempts += 1
                try:
                    await pipe.watch(*watches)
                    await func(pipe)
                    return await pipe.execute()
                except redis.WatchError:
                    continue

    def pubsub(self):
        pubsub = FakePubSub(self)
        self.pubsubs.append(pubsub)
        return pubsub

    async def aclose(self):
        self.closed = True


def make_store(hashes=None, fail=False) -> tuple[RedisStore, FakeRedis]:
    client = FakeRedis(hashes, fail)
    return RedisStore(redis_url="redis://test", prefix="hotel", client=client), client


async def eventually(predicate, attempts: int = 100) -> bool:
    for _ in range(attempts):
        if predicate():
            return True
        await asyncio.sleep(0)
    return predicate()


# ==================== reads ====================


async def test_load_returns_none_for_missing_collection():
    store, _ = make_store()

    assert await store.load("bookings") is None


async def test_load_attaches_ids_and_skips_bad_json():
    store, _ = make_store(
        {
            "hotel:rooms": {
                "r101": json.dumps({"number": "101", "status": "available"}),
                "r102": "{not json",
                "r103": json.dumps(["not", "an", "object"]),
            }
        }
    )

    assert await store.load("rooms") == [{"number": "101", "status": "available", "id": "r101"}]


# ==================== writes ====================


async def test_write_status_patches_record_and_publishes():
    store, client = make_store({"hotel:rooms": {"r101": json.dumps({"number": "101", "status": "available"})}})

    await store.write_room_status("r101", "occupied")

    assert json.loads(client.hashes["hotel:rooms"]["r101"]) == {"number": "101", "status": "occupied"}
    assert client.published == [("hotel:changes:rooms", "r101")]


async def test_concurrent_edit_is_not_lost_by_status_write():
    store, client = make_store(
        {"hotel:rooms": {"r1": json.dumps({"number": "101", "status": "available", "price": 100})}}
    )

    def reprice():
        client.store_field("hotel:rooms", "r1", json.dumps({"number": "101", "status": "available", "price": 250}))

    client.on_watched_read = reprice

    await store.write_room_status("r1", "occupied")

    assert json.loads(client.hashes["hotel:rooms"]["r1"]) == {"number": "101", "status": "occupied", "price": 250}
    assert client.transaction_attempts == 2
    assert client.published == [("hotel:changes:rooms", "r1")]


async def test_write_to_missing_record_fails():
    store, client = make_store({"hotel:bookings": {}})

    with pytest.raises(WriteFailure):
        await store.write_booking_status("ghost", "completed")
    assert client.published == []


async def test_redis_errors_become_write_failures():
    store, _ = make_store({"hotel:rooms": {"r101": "{}"}}, fail=True)

    with pytest.raises(WriteFailure) as exc:
        await store.write_room_status("r101", "occupied")
    assert "connection refused" in exc.value.detail


async def test_undecodable_record_becomes_write_failure():
    store, client = make_store({"hotel:rooms": {"r101": "{not json"}})

    with pytest.raises(WriteFailure) as exc:
        await store.write_room_status("r101", "occupied")
    assert "not JSON" in exc.value.detail
    assert client.published == []


async def test_put_record_strips_id():
    store, client = make_store()

    await store.put_record("bookings", "b1", {"id": "b1", "roomNumber": "101"})

    assert json.loads(client.hashes["hotel:bookings"]["b1"]) == {"roomNumber": "101"}
    assert client.published == [("hotel:changes:bookings", "b1")]


# ==================== subscriptions ====================


async def test_subscribe_delivers_current_collection():
    store, _ = make_store({"hotel:rooms": {"r101": json.dumps({"number": "101", "status": "available"})}})
    deliveries = []

    unsubscribe = store.subscribe_rooms(deliveries.append)

    assert await eventually(lambda: len(deliveries) == 1)
    assert deliveries[0] == [{"number": "101", "status": "available", "id": "r101"}]
    unsubscribe()
    await store.close()


async def test_change_message_redelivers_whole_collection():
    store, _ = make_store({"hotel:rooms": {"r101": json.dumps({"number": "101", "status": "available"})}})
    deliveries = []
    store.subscribe_rooms(deliveries.append)
    assert await eventually(lambda: len(deliveries) == 1)

    await store.put_record("rooms", "r102", {"number": "102", "status": "available"})

    assert await eventually(lambda: len(deliveries) == 2)
    assert sorted(record["id"] for record in deliveries[1]) == ["r101", "r102"]
    await store.close()


async def test_missing_collection_is_not_delivered_until_created():
    store, client = make_store()
    deliveries = []
    store.subscribe_bookings(deliveries.append)
    assert await eventually(lambda: client.subscribe_attempts == 1)
    await asyncio.sleep(0)

    assert deliveries == []

    await store.put_record("bookings", "b1", {"roomNumber": "101"})

    assert await eventually(lambda: len(deliveries) == 1)
    assert deliveries[0] == [{"roomNumber": "101", "id": "b1"}]
    await store.close()


async def test_listener_resubscribes_after_redis_error():
    store, client = make_store({"hotel:rooms": {}})
    store.RECONNECT_DELAY = 0
    client.pubsub_failures = 1
    deliveries = []

    store.subscribe_rooms(deliveries.append)

    assert await eventually(lambda: len(deliveries) == 1)
    assert client.subscribe_attempts == 2
    assert client.pubsubs[0].closed
    await store.close()


async def test_unsubscribe_stops_listener():
    store, client = make_store({"hotel:rooms": {}})
    deliveries = []
    unsubscribe = store.subscribe_rooms(deliveries.append)
    assert await eventually(lambda: len(deliveries) == 1)

    unsubscribe()

    assert await eventually(lambda: client.pubsubs[0].closed)
    await store.put_record("rooms", "r101", {"number": "101", "status": "available"})
    await asyncio.sleep(0)
    assert len(deliveries) == 1


async def test_close_cancels_listeners_and_connection():
    store, client = make_store({"hotel:rooms": {}, "hotel:bookings": {}})
    store.subscribe_rooms(lambda records: None)
    store.subscribe_bookings(lambda records: None)
    assert await eventually(lambda: client.subscribe_attempts == 2)

    await store.close()

    assert all(pubsub.closed for pubsub in client.pubsubs)
    assert client.closed
    assert store._listeners == set()
