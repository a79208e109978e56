"""Per-stop ETA from live checkpoints, with a one-shot schedule-shift fallback."""

import datetime
import enum
import logging
from dataclasses import dataclass
from typing import Mapping

from live_tracker.core.schedule_time import (
    UNKNOWN_TIME,
    format_static_time,
    minutes_to_display,
    parse_time_to_minutes,
    scheduled_minutes,
    to_12_hour,
)
from live_tracker.core.trip import Route

logger = logging.getLogger(__name__)

# |eta - scheduled| below this many minutes counts as on time
ON_TIME_TOLERANCE_MIN = 2


class DelayStatus(str, enum.Enum):
    ON_TIME = "on_time"
    LATE = "late"
    EARLY = "early"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class DelayInfo:
    status: DelayStatus
    minutes: int = 0  # positive = late

    @property
    def text(self) -> str:
        if self.status is DelayStatus.ON_TIME:
            return "On time"
        if self.status is DelayStatus.LATE:
            return f"+{self.minutes} min late"
        if self.status is DelayStatus.EARLY:
            return f"{abs(self.minutes)} min early"
        return ""


def classify_delay(eta: str | None, scheduled: str | None) -> DelayInfo:
    """Compare a displayed ETA against the scheduled display time."""
    eta_min = parse_time_to_minutes(eta)
    sched_min = parse_time_to_minutes(scheduled)
    if eta_min is None or sched_min is None:
        return DelayInfo(DelayStatus.UNKNOWN)
    diff = eta_min - sched_min
    if abs(diff) < ON_TIME_TOLERANCE_MIN:
        return DelayInfo(DelayStatus.ON_TIME, diff)
    return DelayInfo(DelayStatus.LATE if diff > 0 else DelayStatus.EARLY, diff)


@dataclass(frozen=True)
class EtaProjection:
    etas: dict[int, str]
    latest_index: int


class EtaProjector:
    """Keeps the current ETA table for one trip.

    Checkpoint-anchored projection is used whenever the feed carries a usable
    arrival map. Before the first checkpoint, a single schedule-shift estimate
    is computed from the first fix and then frozen.
    """

    def __init__(self) -> None:
        self.etas: dict[int, str] = {}
        self.anchored = False
        self._fallback_done = False

    @property
    def has_estimate(self) -> bool:
        return self.anchored or self._fallback_done

    def update(
        self,
        route: Route,
        checkpoints: Mapping[int, str] | None,
        has_fix: bool,
        now: datetime.datetime,
    ) -> bool:
        """Recompute ETAs for one inbound message; True if the table changed."""
        if checkpoints:
            projection = self.from_checkpoints(checkpoints, route)
            if projection is not None:
                self.anchored = True
                changed = projection.etas != self.etas
                self.etas = projection.etas
                return changed
        if has_fix and not self.has_estimate:
            etas = self.from_schedule_shift(route, now)
            if etas is not None:
                self._fallback_done = True
                self.etas = etas
                logger.info("Route %s: schedule-shift ETA estimate for %d stops", route.route_id, len(etas))
                return True
        return False

    @staticmethod
    def from_checkpoints(checkpoints: Mapping[int, str], route: Route) -> EtaProjection | None:
        """Carry the delay observed at the latest checkpoint forward.

        Returns None when the latest sequence is outside the route or its
        reported time cannot be parsed.
        """
        stops = route.stops
        if not checkpoints or not stops:
            return None
        latest_seq = max(checkpoints)
        latest_index = latest_seq - 1
        if latest_index < 0 or latest_index >= len(stops):
            return None
        reported_min = parse_time_to_minutes(checkpoints[latest_seq])
        if reported_min is None:
            logger.debug("Unparsable checkpoint time %r", checkpoints[latest_seq])
            return None

        etas: dict[int, str] = {}
        for i in range(latest_index + 1):
            reported = checkpoints.get(i + 1)
            if reported:
                etas[i] = to_12_hour(reported)
            else:
                etas[i] = format_static_time(stops[i].scheduled_time, route.direction)

        anchor_sched = scheduled_minutes(stops[latest_index].scheduled_time, route.direction)
        for j in range(latest_index + 1, len(stops)):
            sched = scheduled_minutes(stops[j].scheduled_time, route.direction)
            if sched is None or anchor_sched is None:
                etas[j] = UNKNOWN_TIME
                continue
            etas[j] = minutes_to_display(reported_min + (sched - anchor_sched))

        return EtaProjection(etas=etas, latest_index=latest_index)

    @staticmethod
    def from_schedule_shift(route: Route, now: datetime.datetime) -> dict[int, str] | None:
        """Shift the whole schedule by how late the trip started."""
        stops = route.stops
        if not stops:
            return None
        start_min = scheduled_minutes(stops[0].scheduled_departure, route.direction)
        if start_min is None:
            return None
        now_min = now.hour * 60 + now.minute
        shift = now_min - start_min

        etas: dict[int, str] = {0: minutes_to_display(now_min)}
        for stop in stops[1:]:
            sched = scheduled_minutes(stop.scheduled_time, route.direction)
            etas[stop.index] = UNKNOWN_TIME if sched is None else minutes_to_display(sched + shift)
        return etas
