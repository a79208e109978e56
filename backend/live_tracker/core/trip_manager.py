"""Application context: owns the shared channel and the active trip session."""

import logging

from live_tracker.core.broadcaster import Broadcaster
from live_tracker.core.tracking_session import TrackingSession
from live_tracker.core.transport_channel import TransportChannel
from live_tracker.core.trip import Route

logger = logging.getLogger(__name__)


class TripManager:
    """Switches between selected trips and forwards host lifecycle signals."""

    def __init__(self, channel: TransportChannel, broadcaster: Broadcaster) -> None:
        self.channel = channel
        self.broadcaster = broadcaster
        self.session: TrackingSession | None = None
        self._detach_broadcast = None

    async def start_trip(self, route: Route) -> TrackingSession:
        """Close any active session and start tracking ``route``."""
        await self.end_trip()
        session = TrackingSession(self.channel, route)
        self._detach_broadcast = session.subscribe(self.broadcaster.publish)
        await session.start()
        self.session = session
        return session

    async def end_trip(self) -> bool:
        """Close the active session; False if there was none."""
        session, self.session = self.session, None
        if session is None:
            return False
        if self._detach_broadcast is not None:
            self._detach_broadcast()
            self._detach_broadcast = None
        await session.close()
        self.broadcaster.clear()
        return True

    async def handle_app_state(self, state: str) -> None:
        logger.info("App state changed to %s", state)
        await self.channel.handle_app_state(state)

    async def shutdown(self) -> None:
        await self.end_trip()
        await self.channel.close()

    def get_diagnostics(self) -> dict:
        return {
            "connection_status": self.channel.status.value,
            "channel_url": self.channel.url,
            "channel_subscribers": self.channel.subscriber_count,
            "cached_payload": self.channel.cached_payload,
            "ws_subscribers": self.broadcaster.subscriber_count,
            "session": self.session.get_diagnostics() if self.session else None,
        }
