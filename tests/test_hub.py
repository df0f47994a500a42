"""Tests for the live broadcast hub."""

import asyncio
import dataclasses
import json
import time
from unittest.mock import AsyncMock

import pytest

from mycowood.bridge.hub import SENSOR_EVENT, BroadcastHub


def test_publish_reaches_every_subscriber(record):
    """Test fan-out to all current subscribers."""
    hub = BroadcastHub(buffer_size=4)
    subscribers = [hub.subscribe() for _ in range(3)]

    assert hub.publish(record) == 3

    for subscriber in subscribers:
        assert subscriber.pending == 1
        message = json.loads(subscriber._queue.get_nowait())
        assert message["event"] == SENSOR_EVENT
        assert message["data"]["temperature"] == 24.5
        assert message["data"]["soil"] == 38


def test_late_subscriber_sees_only_new_records(record):
    """Test that nothing is replayed to a subscriber that joins later."""
    hub = BroadcastHub()
    early = hub.subscribe()
    hub.publish(record)
    late = hub.subscribe()

    assert early.pending == 1
    assert late.pending == 0


def test_unsubscribe_stops_delivery(record):
    """Test that a removed subscriber receives nothing further."""
    hub = BroadcastHub()
    subscriber = hub.subscribe()
    hub.unsubscribe(subscriber)
    hub.unsubscribe(subscriber)

    assert hub.publish(record) == 0
    assert hub.subscriber_count == 0


def test_slow_subscriber_drops_oldest(record):
    """Test that a full buffer keeps the newest records."""
    hub = BroadcastHub(buffer_size=3)
    subscriber = hub.subscribe()

    for i in range(10):
        hub.publish(dataclasses.replace(record, soil_moisture=i))

    assert subscriber.pending == 3
    assert subscriber.dropped == 7
    soils = [json.loads(subscriber._queue.get_nowait())["data"]["soil"] for _ in range(3)]
    assert soils == [7, 8, 9]


@pytest.mark.asyncio
async def test_stalled_subscriber_does_not_block_others(record):
    """Test that publish stays fast while one subscriber never reads."""
    hub = BroadcastHub(buffer_size=8)
    hub.subscribe()  # never read
    readers = [hub.subscribe() for _ in range(20)]
    received = {r.id: [] for r in readers}

    async def consume(subscriber):
        while True:
            message = await subscriber.get()
            if message is None:
                return
            received[subscriber.id].append(json.loads(message)["data"]["soil"])

    tasks = [asyncio.create_task(consume(r)) for r in readers]

    for i in range(200):
        started = time.monotonic()
        hub.publish(dataclasses.replace(record, soil_moisture=i))
        assert time.monotonic() - started < 0.05
        await asyncio.sleep(0)

    await asyncio.sleep(0)
    hub.close()
    await asyncio.wait_for(asyncio.gather(*tasks), timeout=2)

    for soils in received.values():
        assert soils == sorted(soils)
        assert soils[-1] == 199


@pytest.mark.asyncio
async def test_close_wakes_waiting_subscribers():
    """Test that closing the hub ends every subscriber's stream."""
    hub = BroadcastHub()
    subscriber = hub.subscribe()
    waiter = asyncio.create_task(subscriber.get())
    await asyncio.sleep(0)

    hub.close()

    assert await asyncio.wait_for(waiter, timeout=1) is None
    assert await subscriber.get() is None
    with pytest.raises(RuntimeError):
        hub.subscribe()


@pytest.mark.asyncio
async def test_on_command_forwards_to_relay():
    """Test that subscriber commands reach the relay verbatim."""
    relay = AsyncMock()
    hub = BroadcastHub(relay)
    subscriber = hub.subscribe()

    await hub.on_command(subscriber, "MUTE")

    relay.send.assert_awaited_once_with("MUTE")


def test_buffer_size_must_be_positive():
    with pytest.raises(ValueError):
        BroadcastHub(buffer_size=0)
