"""Shared fixtures: a test route, fake live sockets and a fake channel."""

import asyncio
import datetime
from collections import namedtuple

import aiohttp
import pytest

from live_tracker.core.transport_channel import ConnectionStatus
from live_tracker.core.trip import Direction, Route, Stop

FakeMessage = namedtuple("FakeMessage", "type data extra")

# Stops along a meridian near Chennai (~12.9°N, 80.0°E); 0.004° lat ≈ 445 m
STOP_LATS = [12.900, 12.904, 12.908, 12.912, 12.916]
STOP_LON = 80.000


def make_stops(times=("08:00", "08:10", "08:20", "08:30", "08:40")) -> tuple[Stop, ...]:
    stops = []
    for i, (lat, t) in enumerate(zip(STOP_LATS, times)):
        stops.append(Stop(
            index=i,
            name=f"Stop {chr(ord('A') + i)}",
            lat=lat,
            lon=STOP_LON,
            scheduled_arrival=t if i > 0 else None,
            scheduled_departure=t,
        ))
    return tuple(stops)


def make_route(direction: Direction = Direction.UP, stops=None) -> Route:
    return Route(
        bus_id="21",
        route_id=7,
        direction=direction,
        stops=make_stops() if stops is None else stops,
        route_name="Tambaram - Guindy",
        driver_id="D-104",
    )


@pytest.fixture
def route() -> Route:
    return make_route()


class FixedClock:
    def __init__(self, hour: int, minute: int) -> None:
        self.now = datetime.datetime(2026, 10, 18, hour, minute)

    def set(self, hour: int, minute: int) -> None:
        self.now = self.now.replace(hour=hour, minute=minute)

    def __call__(self) -> datetime.datetime:
        return self.now


class FakeSocket:
    """Stands in for aiohttp.ClientWebSocketResponse."""

    def __init__(self) -> None:
        self.sent: list[str] = []
        self.closed = False
        self._inbox: asyncio.Queue = asyncio.Queue()

    async def send_str(self, text: str) -> None:
        if self.closed:
            raise ConnectionResetError("socket closed")
        self.sent.append(text)

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._inbox.put_nowait(None)

    def exception(self):
        return None

    def feed(self, text: str) -> None:
        self._inbox.put_nowait(FakeMessage(aiohttp.WSMsgType.TEXT, text, None))

    def feed_binary(self, data: bytes) -> None:
        self._inbox.put_nowait(FakeMessage(aiohttp.WSMsgType.BINARY, data, None))

    def drop(self) -> None:
        """Server-side close."""
        self.closed = True
        self._inbox.put_nowait(None)

    def __aiter__(self):
        return self

    async def __anext__(self):
        msg = await self._inbox.get()
        if msg is None:
            raise StopAsyncIteration
        return msg


class FakeConnector:
    def __init__(self, failures: int = 0) -> None:
        self.failures = failures
        self.calls = 0
        self.sockets: list[FakeSocket] = []

    async def __call__(self, url: str) -> FakeSocket:
        self.calls += 1
        if self.failures > 0:
            self.failures -= 1
            raise ConnectionRefusedError("refused")
        ws = FakeSocket()
        self.sockets.append(ws)
        return ws


async def wait_until(predicate, timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


class FakeChannel:
    """Synchronous stand-in for TransportChannel used by session tests."""

    def __init__(self) -> None:
        self.url = "wss://feed.example/passenger-ws"
        self.status = ConnectionStatus.SUSPENDED
        self.sent: list = []
        self.connect_calls = 0
        self._subscribers: dict[int, object] = {}
        self._status_subscribers: dict[int, object] = {}
        self._next = 0

    @property
    def cached_payload(self):
        return self.sent[-1] if self.sent else None

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def connect(self) -> None:
        self.connect_calls += 1
        self.set_status(ConnectionStatus.CONNECTED)

    async def send(self, payload) -> None:
        self.sent.append(payload)

    async def handle_app_state(self, state: str) -> None:
        if state == "background":
            self.set_status(ConnectionStatus.SUSPENDED)
        elif state == "active":
            self.set_status(ConnectionStatus.CONNECTED)

    async def close(self) -> None:
        self.set_status(ConnectionStatus.SUSPENDED)

    def subscribe(self, callback):
        return self._add(self._subscribers, callback)

    def subscribe_status(self, callback):
        return self._add(self._status_subscribers, callback)

    def _add(self, registry, callback):
        token = self._next
        self._next += 1
        registry[token] = callback
        return lambda: registry.pop(token, None)

    def emit(self, data) -> None:
        for cb in list(self._subscribers.values()):
            cb(data)

    def set_status(self, status: ConnectionStatus) -> None:
        self.status = status
        for cb in list(self._status_subscribers.values()):
            cb(status)


@pytest.fixture
def fake_channel() -> FakeChannel:
    return FakeChannel()
