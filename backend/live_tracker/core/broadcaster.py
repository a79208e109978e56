"""Fan-out of tracking snapshots to WebSocket subscribers."""

import asyncio
import logging

import orjson

from live_tracker.schemas.tracking import TrackingSnapshot

logger = logging.getLogger(__name__)


class Broadcaster:
    """Keeps the latest encoded snapshot and pushes updates to subscriber queues."""

    def __init__(self, queue_size: int = 10) -> None:
        self._queue_size = queue_size
        self._subscribers: set[asyncio.Queue] = set()
        self._state: bytes | None = None

    def publish(self, snapshot: TrackingSnapshot) -> None:
        """Store the snapshot for new connections and fan it out."""
        payload = orjson.dumps(
            {"type": "update", "tracking": snapshot.model_dump(mode="json")},
            option=orjson.OPT_NON_STR_KEYS,
        )
        self._state = payload

        # Slow consumers are dropped rather than blocking the tracker
        dead = set()
        for q in self._subscribers:
            try:
                q.put_nowait(payload)
            except asyncio.QueueFull:
                dead.add(q)
        if dead:
            logger.warning("Dropping %d slow tracking subscriber(s)", len(dead))
        self._subscribers -= dead

    def clear(self) -> None:
        self._state = None

    def get_current_state(self) -> bytes | None:
        return self._state

    def subscribe(self) -> asyncio.Queue:
        q: asyncio.Queue = asyncio.Queue(maxsize=self._queue_size)
        self._subscribers.add(q)
        return q

    def unsubscribe(self, q: asyncio.Queue) -> None:
        self._subscribers.discard(q)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)
