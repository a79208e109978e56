"""Shared live-data WebSocket with reconnect and replay of the last payload.

One physical connection serves every tracking session in the process.
Outbound traffic is last-value-wins: the most recent payload is kept in RAM
and re-sent each time a new connection opens. Inbound frames are fanned out
to all subscribers in registration order.
"""

import asyncio
import enum
import logging
from typing import Any, Awaitable, Callable

import aiohttp
import orjson

from live_tracker.config import settings

logger = logging.getLogger(__name__)


class ConnectionStatus(str, enum.Enum):
    CONNECTING = "connecting"
    CONNECTED = "connected"
    SUSPENDED = "suspended"


# Opens a socket for a URL. The result must behave like
# aiohttp.ClientWebSocketResponse: send_str(), close(), closed, exception()
# and async iteration over WSMessage.
Connector = Callable[[str], Awaitable[Any]]
MessageCallback = Callable[[Any], None]
StatusCallback = Callable[[ConnectionStatus], None]


class TransportChannel:
    """Lifecycle-aware live feed connection with unbounded fixed-delay retry."""

    def __init__(
        self,
        url: str | None = None,
        reconnect_delay: float | None = None,
        connector: Connector | None = None,
    ) -> None:
        self.url = url or settings.live_ws_url
        self.reconnect_delay = (
            settings.reconnect_delay_seconds if reconnect_delay is None else reconnect_delay
        )
        self._connector = connector or self._aiohttp_connect
        self._session: aiohttp.ClientSession | None = None
        self._ws = None
        self._task: asyncio.Task | None = None
        self._cached_payload: Any = None
        self._subscribers: dict[int, MessageCallback] = {}
        self._status_subscribers: dict[int, StatusCallback] = {}
        self._next_token = 0
        self.status = ConnectionStatus.SUSPENDED

    @property
    def cached_payload(self) -> Any:
        return self._cached_payload

    @property
    def is_connected(self) -> bool:
        return self.status is ConnectionStatus.CONNECTED and self._ws is not None

    # -- lifecycle -------------------------------------------------------

    async def connect(self) -> None:
        """Start connecting; no-op while already connecting or connected."""
        if self._task is not None and not self._task.done():
            return
        self._set_status(ConnectionStatus.CONNECTING)
        self._task = asyncio.create_task(self._run(), name="live-channel")

    async def resume(self) -> None:
        await self.connect()

    async def suspend(self) -> None:
        """Close the socket and stop retrying; keep cache and subscribers."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            if task is not asyncio.current_task():
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        if self.status is not ConnectionStatus.SUSPENDED:
            logger.info("Live channel suspended")
        self._set_status(ConnectionStatus.SUSPENDED)

    async def handle_app_state(self, state: str) -> None:
        """Host lifecycle signal: 'background' suspends, 'active' resumes."""
        if state == "background":
            await self.suspend()
        elif state == "active":
            await self.resume()
        else:
            logger.debug("Ignoring app state %r", state)

    async def close(self) -> None:
        await self.suspend()
        if self._session is not None:
            await self._session.close()
            self._session = None

    # -- outbound --------------------------------------------------------

    async def send(self, payload: Any) -> None:
        """Cache ``payload`` as the current outbound state and send it if open."""
        self._cached_payload = payload
        if not self.is_connected:
            logger.debug("Live channel not connected, payload cached for replay")
            return
        await self._transmit(self._ws, payload)

    # -- inbound ---------------------------------------------------------

    def subscribe(self, callback: MessageCallback) -> Callable[[], None]:
        """Register for every inbound message; returns the detach function."""
        return self._register(self._subscribers, callback)

    def subscribe_status(self, callback: StatusCallback) -> Callable[[], None]:
        return self._register(self._status_subscribers, callback)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def _register(self, registry: dict, callback) -> Callable[[], None]:
        token = self._next_token
        self._next_token += 1
        registry[token] = callback

        def unsubscribe() -> None:
            registry.pop(token, None)

        return unsubscribe

    # ------------------------------------------------------------------

    async def _aiohttp_connect(self, url: str):
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return await self._session.ws_connect(url, heartbeat=settings.ws_heartbeat_seconds)

    async def _run(self) -> None:
        while True:
            self._set_status(ConnectionStatus.CONNECTING)
            try:
                ws = await self._connector(self.url)
            except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as e:
                logger.warning(
                    "Live channel connect to %s failed (%s), retrying in %.1fs",
                    self.url, type(e).__name__, self.reconnect_delay,
                )
            except Exception:
                logger.exception("Live channel connect to %s failed", self.url)
            else:
                try:
                    await self._serve(ws)
                except Exception:
                    logger.exception("Live channel connection crashed")
                logger.warning("Live channel closed, reconnecting in %.1fs", self.reconnect_delay)
            self._set_status(ConnectionStatus.CONNECTING)
            await asyncio.sleep(self.reconnect_delay)

    async def _serve(self, ws) -> None:
        self._ws = ws
        self._set_status(ConnectionStatus.CONNECTED)
        logger.info("Live channel connected to %s", self.url)
        try:
            if self._cached_payload is not None:
                await self._transmit(ws, self._cached_payload)
                logger.info("Re-sent cached payload after connect")
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self._dispatch(msg.data)
                elif msg.type == aiohttp.WSMsgType.BINARY:
                    self._dispatch(msg.data.decode("utf-8", errors="replace"))
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    logger.warning("Live channel error: %s", ws.exception())
                    break
        except (aiohttp.ClientError, OSError) as e:
            logger.warning("Live channel dropped: %s", e)
        finally:
            self._ws = None
            if not ws.closed:
                await ws.close()

    async def _transmit(self, ws, payload: Any) -> None:
        text = payload if isinstance(payload, str) else orjson.dumps(payload).decode()
        try:
            await ws.send_str(text)
        except (aiohttp.ClientError, OSError) as e:
            # Payload stays cached and goes out again on the next connect
            logger.warning("Live channel send failed: %s", e)

    def _dispatch(self, raw: str) -> None:
        try:
            data = orjson.loads(raw)
        except orjson.JSONDecodeError:
            logger.debug("Non-JSON frame delivered raw: %.120s", raw)
            data = raw
        for callback in list(self._subscribers.values()):
            try:
                callback(data)
            except Exception:
                logger.exception("Live channel subscriber failed")

    def _set_status(self, status: ConnectionStatus) -> None:
        if status is self.status:
            return
        self.status = status
        for callback in list(self._status_subscribers.values()):
            try:
                callback(status)
            except Exception:
                logger.exception("Live channel status subscriber failed")
