"""One passenger's view of one trip: folds live messages into tracking state."""

import datetime
import logging
from collections import deque
from typing import Any, Callable

from live_tracker.config import settings
from live_tracker.core.eta_projector import EtaProjector, classify_delay
from live_tracker.core.reachability import ReachabilityTracker
from live_tracker.core.schedule_time import UNKNOWN_TIME, format_static_time
from live_tracker.core.segment_locator import SegmentLocator, SegmentPosition
from live_tracker.core.transport_channel import ConnectionStatus, TransportChannel
from live_tracker.core.trip import GPSFix, Route
from live_tracker.schemas.messages import LiveMessage, ReleaseMessage, SubscriptionMessage
from live_tracker.schemas.tracking import FixInfo, StopProgress, TrackingSnapshot

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[TrackingSnapshot], None]


def _local_now() -> datetime.datetime:
    return datetime.datetime.now()


class TrackingSession:
    """Single writer of the tracking state for a selected trip.

    Each inbound message runs through reachability, ETA projection and
    segment location in that order, then a fresh immutable snapshot is
    published to every subscriber.
    """

    def __init__(
        self,
        channel: TransportChannel,
        route: Route,
        clock: Callable[[], datetime.datetime] = _local_now,
        locator: SegmentLocator | None = None,
        reachability: ReachabilityTracker | None = None,
        projector: EtaProjector | None = None,
    ) -> None:
        self.channel = channel
        self.route = route
        self._clock = clock
        self.locator = locator or SegmentLocator()
        self.reachability = reachability or ReachabilityTracker()
        self.projector = projector or EtaProjector()

        self._segment = SegmentPosition(index=0, progress=0.0)
        self._last_fix: GPSFix | None = None
        self._updated_at: datetime.datetime | None = None
        self._subscribers: dict[int, SnapshotCallback] = {}
        self._next_token = 0
        self._detach: list[Callable[[], None]] = []
        self._started = False
        self._closed = False
        self._events: deque[dict] = deque(maxlen=200)
        self._snapshot = self._build_snapshot()

    @property
    def snapshot(self) -> TrackingSnapshot:
        return self._snapshot

    @property
    def closed(self) -> bool:
        return self._closed

    async def start(self) -> None:
        """Attach to the channel and announce interest in the trip."""
        if self._started:
            return
        self._started = True
        self._detach.append(self.channel.subscribe(self.handle_message))
        self._detach.append(self.channel.subscribe_status(self._on_status))
        await self.channel.send(SubscriptionMessage.for_route(self.route).model_dump())
        await self.channel.connect()
        logger.info(
            "Tracking bus %s on route %s (%s, %d stops)",
            self.route.bus_id, self.route.route_id, self.route.direction.value, len(self.route.stops),
        )
        self._publish()

    async def close(self) -> None:
        """Detach from the channel and tell the server we lost interest."""
        if self._closed:
            return
        self._closed = True
        for detach in self._detach:
            detach()
        self._detach.clear()
        self._subscribers.clear()
        await self.channel.send(ReleaseMessage(driver_id=settings.release_driver_id).model_dump())
        logger.info("Stopped tracking bus %s", self.route.bus_id)

    def subscribe(self, callback: SnapshotCallback) -> Callable[[], None]:
        """Receive the current snapshot now and every new one after."""
        token = self._next_token
        self._next_token += 1
        self._subscribers[token] = callback
        self._notify(callback, self._snapshot)

        def unsubscribe() -> None:
            self._subscribers.pop(token, None)

        return unsubscribe

    # ------------------------------------------------------------------

    def handle_message(self, data: Any) -> None:
        if self._closed:
            return
        if not isinstance(data, dict):
            logger.debug("Ignoring non-object live message: %.120r", data)
            return

        msg = LiveMessage.from_payload(data)
        if msg.fix is None and not msg.checkpoints:
            logger.debug("Dropping message without usable fix or checkpoints")
            return

        now = self._clock()
        stops = self.route.stops

        if msg.fix is not None:
            self._last_fix = msg.fix
            for index in self.reachability.observe_fix(msg.fix, stops):
                self._log_event("reached_proximity", stop=index)

        if msg.checkpoints and self.reachability.observe_checkpoints(msg.checkpoints, len(stops)):
            self._log_event(
                "reached_checkpoint",
                stop=self.reachability.last_confirmed_stop_index,
            )

        if self.projector.update(self.route, msg.checkpoints, msg.fix is not None, now):
            self._log_event("eta_checkpoint" if self.projector.anchored else "eta_schedule_shift")

        self._segment = self._locate(msg.fix)
        self._updated_at = now
        self._publish()

    def stop_progress(self) -> list[StopProgress]:
        """Per-stop rows for display: schedule, ETA, reached flag and delay."""
        rows = []
        etas = self._snapshot.eta_by_stop
        for stop in self.route.stops:
            scheduled = format_static_time(stop.scheduled_time, self.route.direction)
            eta = etas.get(stop.index, UNKNOWN_TIME)
            delay = classify_delay(eta, scheduled)
            rows.append(StopProgress(
                index=stop.index,
                name=stop.name,
                scheduled=scheduled,
                eta=eta,
                reached=stop.index in self._snapshot.reached,
                delay_status=delay.status,
                delay_text=delay.text,
            ))
        return rows

    def get_diagnostics(self, limit: int = 50) -> dict:
        counts: dict[str, int] = {}
        for e in self._events:
            counts[e["kind"]] = counts.get(e["kind"], 0) + 1
        return {
            "bus_id": self.route.bus_id,
            "route_id": self.route.route_id,
            "eta_mode": (
                "checkpoint" if self.projector.anchored
                else "schedule_shift" if self.projector.has_estimate
                else "none"
            ),
            "counts": counts,
            "latest": list(self._events)[-max(1, min(limit, 200)):],
        }

    # ------------------------------------------------------------------

    def _locate(self, fix: GPSFix | None) -> SegmentPosition:
        watermark = self.reachability.last_confirmed_stop_index
        segment = self.locator.locate(fix, self.route.stops, watermark, self._segment)
        if segment.index < watermark:
            # Never render the vehicle behind its last confirmed stop
            segment = SegmentPosition(index=watermark, progress=0.0)
        return segment

    def _on_status(self, status: ConnectionStatus) -> None:
        if not self._closed:
            self._publish()

    def _build_snapshot(self) -> TrackingSnapshot:
        fix = self._last_fix
        return TrackingSnapshot(
            bus_id=self.route.bus_id,
            route_id=self.route.route_id,
            segment_index=self._segment.index,
            segment_progress=self._segment.progress,
            last_confirmed_stop_index=self.reachability.last_confirmed_stop_index,
            reached=self.reachability.reached,
            eta_by_stop=dict(self.projector.etas),
            connection_status=self.channel.status,
            last_fix=(
                FixInfo(lat=fix.lat, lon=fix.lon, speed=fix.speed, received_at=fix.received_at)
                if fix else None
            ),
            updated_at=self._updated_at,
        )

    def _publish(self) -> None:
        self._snapshot = self._build_snapshot()
        for callback in list(self._subscribers.values()):
            self._notify(callback, self._snapshot)

    @staticmethod
    def _notify(callback: SnapshotCallback, snapshot: TrackingSnapshot) -> None:
        try:
            callback(snapshot)
        except Exception:
            logger.exception("Tracking snapshot subscriber failed")

    def _log_event(self, kind: str, **payload) -> None:
        self._events.append({
            "ts": datetime.datetime.now(datetime.timezone.utc).isoformat(),
            "kind": kind,
            **payload,
        })
