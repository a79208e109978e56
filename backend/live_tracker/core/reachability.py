"""Monotonic "last confirmed stop" watermark and reached-stop set."""

import logging
import math
from typing import Mapping, Sequence

from live_tracker.config import settings
from live_tracker.core.geo_math import distance_meters
from live_tracker.core.schedule_time import parse_time_to_minutes
from live_tracker.core.trip import GPSFix, Stop

logger = logging.getLogger(__name__)


class ReachabilityTracker:
    """Advances the watermark from proximity hits and checkpoint reports.

    Proximity marks only the stop that was hit. Checkpoints are authoritative
    and mark the whole prefix up to the confirmed stop. Neither trigger can
    move the watermark backwards.
    """

    def __init__(self, threshold_m: float | None = None) -> None:
        self.threshold_m = settings.reach_threshold_meters if threshold_m is None else threshold_m
        self.last_confirmed_stop_index = 0
        self._reached: set[int] = set()

    @property
    def reached(self) -> frozenset[int]:
        return frozenset(self._reached)

    def is_reached(self, index: int) -> bool:
        return index in self._reached

    def mark_reached(self, index: int) -> bool:
        """Mark one stop reached; False if it already was."""
        if index in self._reached:
            return False
        self._reached.add(index)
        if index > self.last_confirmed_stop_index:
            self.last_confirmed_stop_index = index
        return True

    def observe_fix(self, fix: GPSFix, stops: Sequence[Stop]) -> list[int]:
        """Mark every unreached stop within the threshold; return the new ones."""
        newly = []
        for stop in stops:
            if stop.index in self._reached:
                continue
            dist = distance_meters(fix.lat, fix.lon, stop.lat, stop.lon)
            if math.isnan(dist) or dist > self.threshold_m:
                continue
            if self.mark_reached(stop.index):
                newly.append(stop.index)
        if newly:
            logger.info(
                "Stops %s reached by proximity, watermark %d",
                newly, self.last_confirmed_stop_index,
            )
        return newly

    def observe_checkpoints(self, checkpoints: Mapping[int, str], stop_count: int) -> bool:
        """Fold a checkpoint map in; return True if anything changed."""
        if not checkpoints:
            return False
        latest_seq = max(checkpoints)
        if parse_time_to_minutes(checkpoints[latest_seq]) is None:
            logger.debug("Checkpoint %d has no usable time %r", latest_seq, checkpoints[latest_seq])
            return False
        candidate = latest_seq - 1
        if candidate < 0 or candidate >= stop_count:
            logger.debug("Checkpoint sequence %d outside route of %d stops", candidate + 1, stop_count)
            return False
        if candidate < self.last_confirmed_stop_index:
            return False

        changed = False
        for index in range(candidate + 1):
            changed |= self.mark_reached(index)
        if candidate > self.last_confirmed_stop_index:
            self.last_confirmed_stop_index = candidate
            changed = True
        if changed:
            logger.info("Checkpoint confirmed stop %d", candidate)
        return changed
