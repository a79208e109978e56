"""Place a GPS fix on the stop-to-stop segment it most plausibly belongs to.

The search starts at the last confirmed stop rather than at the route
start: nearest-segment search over the whole route flickers backwards when
GPS noise puts the vehicle near an earlier stop. Each candidate segment is
scored by the distance from the fix to its projection on the segment, and
the projection parameter is the progress along it.
"""

import logging
import math
from dataclasses import dataclass
from typing import Sequence

from live_tracker.config import settings
from live_tracker.core.geo_math import distance_meters, is_valid_coordinate
from live_tracker.core.trip import GPSFix, Stop

logger = logging.getLogger(__name__)

# Meters per degree of latitude; longitude scaled by cos(latitude)
M_PER_DEG = 111_320.0

# Progress kept away from exact segment ends while near a stop
MIN_PROGRESS_NEAR_START = 0.05
MAX_PROGRESS_NEAR_END = 0.95


@dataclass(frozen=True)
class SegmentPosition:
    index: int  # vehicle is between stops[index] and stops[index + 1]
    progress: float  # 0.0–1.0 along that segment


def _project(fix: GPSFix, a: Stop, b: Stop) -> tuple[float, float] | None:
    """(distance_m, t) from the fix to segment a-b in a local flat frame."""
    if not all(is_valid_coordinate(v) for v in (fix.lat, fix.lon, a.lat, a.lon, b.lat, b.lon)):
        return None
    lon_m = M_PER_DEG * math.cos(math.radians((a.lat + b.lat) / 2))
    px, py = (fix.lon - a.lon) * lon_m, (fix.lat - a.lat) * M_PER_DEG
    dx, dy = (b.lon - a.lon) * lon_m, (b.lat - a.lat) * M_PER_DEG
    len_sq = dx * dx + dy * dy
    if len_sq < 1e-6:  # degenerate segment
        return math.hypot(px, py), 0.0
    t = max(0.0, min(1.0, (px * dx + py * dy) / len_sq))
    return math.hypot(px - t * dx, py - t * dy), t


class SegmentLocator:
    """Finds current segment and progress, favoring continuity over jitter."""

    def __init__(self, endpoint_snap_m: float | None = None) -> None:
        self.endpoint_snap_m = (
            settings.endpoint_snap_meters if endpoint_snap_m is None else endpoint_snap_m
        )

    def locate(
        self,
        fix: GPSFix | None,
        stops: Sequence[Stop],
        last_confirmed_stop_index: int,
        previous_segment: SegmentPosition,
    ) -> SegmentPosition:
        """Return the segment nearest to the fix at or after the watermark.

        Ties go to the lower index. Falls back to ``previous_segment`` when no
        segment can be scored, so a bad fix never teleports the vehicle back
        to the route start.
        """
        if fix is None or len(stops) < 2:
            return previous_segment

        start = max(0, min(last_confirmed_stop_index, len(stops) - 2))
        best_idx: int | None = None
        best_dist = math.inf
        best_t = 0.0

        for i in range(start, len(stops) - 1):
            projected = _project(fix, stops[i], stops[i + 1])
            if projected is None:
                continue
            dist, t = projected
            if dist < best_dist:
                best_dist = dist
                best_idx = i
                best_t = t

        if best_idx is None:
            logger.debug("No scorable segment from index %d, keeping %s", start, previous_segment)
            return previous_segment

        progress = self._clamp_near_stops(fix, stops[best_idx], stops[best_idx + 1], best_t)
        return SegmentPosition(index=best_idx, progress=progress)

    def _clamp_near_stops(self, fix: GPSFix, a: Stop, b: Stop, t: float) -> float:
        if distance_meters(fix.lat, fix.lon, a.lat, a.lon) <= self.endpoint_snap_m:
            t = max(t, MIN_PROGRESS_NEAR_START)
        if distance_meters(fix.lat, fix.lon, b.lat, b.lon) <= self.endpoint_snap_m:
            t = min(t, MAX_PROGRESS_NEAR_END)
        return t
