"""Tests for Broadcaster fan-out and TripManager trip switching."""

import orjson
import pytest

from conftest import make_route

from live_tracker.core.broadcaster import Broadcaster
from live_tracker.core.trip_manager import TripManager
from live_tracker.schemas.tracking import TrackingSnapshot


def make_snapshot(**kwargs) -> TrackingSnapshot:
    return TrackingSnapshot(bus_id="21", route_id=7, **kwargs)


@pytest.mark.asyncio
async def test_publish_stores_state_and_fans_out():
    broadcaster = Broadcaster()
    q = broadcaster.subscribe()
    broadcaster.publish(make_snapshot(reached=frozenset({0, 1}), eta_by_stop={2: "08:26 AM"}))

    message = orjson.loads(q.get_nowait())
    assert message["type"] == "update"
    assert message["tracking"]["bus_id"] == "21"
    assert sorted(message["tracking"]["reached"]) == [0, 1]
    assert message["tracking"]["eta_by_stop"] == {"2": "08:26 AM"}
    assert broadcaster.get_current_state() is not None

    broadcaster.clear()
    assert broadcaster.get_current_state() is None


@pytest.mark.asyncio
async def test_slow_subscriber_is_dropped():
    broadcaster = Broadcaster(queue_size=1)
    slow = broadcaster.subscribe()
    broadcaster.publish(make_snapshot())
    broadcaster.publish(make_snapshot(segment_index=1))
    assert broadcaster.subscriber_count == 0
    assert slow.qsize() == 1


@pytest.mark.asyncio
async def test_unsubscribe():
    broadcaster = Broadcaster()
    q = broadcaster.subscribe()
    broadcaster.unsubscribe(q)
    broadcaster.publish(make_snapshot())
    assert q.empty()


@pytest.mark.asyncio
async def test_trip_manager_switches_sessions(fake_channel):
    broadcaster = Broadcaster()
    manager = TripManager(fake_channel, broadcaster)

    first = await manager.start_trip(make_route())
    assert manager.session is first
    assert broadcaster.get_current_state() is not None
    assert fake_channel.subscriber_count == 1

    second = await manager.start_trip(make_route())
    assert first.closed
    assert manager.session is second
    assert fake_channel.subscriber_count == 1
    # subscription, release, subscription
    assert [p.get("route_id") for p in fake_channel.sent] == [7, 0, 7]

    q = broadcaster.subscribe()
    fake_channel.emit({"lat": 12.9081, "long": 80.0})
    assert orjson.loads(q.get_nowait())["tracking"]["last_confirmed_stop_index"] == 2


@pytest.mark.asyncio
async def test_trip_manager_end_and_shutdown(fake_channel):
    broadcaster = Broadcaster()
    manager = TripManager(fake_channel, broadcaster)
    assert await manager.end_trip() is False

    await manager.start_trip(make_route())
    assert await manager.end_trip() is True
    assert manager.session is None
    assert broadcaster.get_current_state() is None

    diag = manager.get_diagnostics()
    assert diag["session"] is None
    assert diag["cached_payload"] == {"driver_id": "exit", "route_id": 0, "direction": "up"}

    await manager.start_trip(make_route())
    await manager.shutdown()
    assert manager.session is None
    assert fake_channel.status.value == "suspended"
