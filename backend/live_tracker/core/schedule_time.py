"""Conversions between schedule time strings and minutes since midnight.

Two textual forms circulate: "HH:MM" (24h, optionally with seconds) from the
catalog and the live feed, and "hh:mm AM/PM" for display. ETA arithmetic is
done in minutes since midnight and wraps around the day.
"""

import re

from live_tracker.core.trip import Direction

UNKNOWN_TIME = "--:--"
MINUTES_PER_DAY = 24 * 60

_MERIDIEM_RE = re.compile(r"\s*(AM|PM)$", re.IGNORECASE)


def _has_meridiem(text: str) -> bool:
    upper = text.upper()
    return "AM" in upper or "PM" in upper


def _split_hours_minutes(text: str) -> tuple[int, int] | None:
    parts = text.strip().split(":")
    if len(parts) < 2:
        return None
    try:
        return int(parts[0]), int(parts[1])
    except ValueError:
        return None


def parse_time_to_minutes(text: str | None) -> int | None:
    """Minutes since midnight for "HH:MM" or "hh:mm AM/PM", None if unparsable."""
    if not text or text == UNKNOWN_TIME:
        return None
    s = str(text).strip()
    match = _MERIDIEM_RE.search(s)
    if match:
        hm = _split_hours_minutes(s[:match.start()])
        if hm is None:
            return None
        hours = hm[0] % 12
        if match.group(1).upper() == "PM":
            hours += 12
        return hours * 60 + hm[1]
    hm = _split_hours_minutes(s)
    if hm is None:
        return None
    return (hm[0] % 24) * 60 + hm[1]


def minutes_to_hhmm(minutes: int | None) -> str:
    if minutes is None:
        return UNKNOWN_TIME
    normalized = minutes % MINUTES_PER_DAY
    return f"{normalized // 60:02d}:{normalized % 60:02d}"


def to_12_hour(text: str | None) -> str:
    """Render a 24h time as "hh:mm AM/PM"; 12h input passes through."""
    if not text or text == UNKNOWN_TIME:
        return UNKNOWN_TIME
    if _has_meridiem(str(text)):
        return str(text)
    hm = _split_hours_minutes(str(text))
    if hm is None:
        return UNKNOWN_TIME
    hours, minutes = hm
    period = "PM" if hours >= 12 else "AM"
    return f"{hours % 12 or 12:02d}:{minutes:02d} {period}"


def minutes_to_display(minutes: int | None) -> str:
    return to_12_hour(minutes_to_hhmm(minutes))


def format_static_time(text: str | None, direction: Direction) -> str:
    """Display form of a static schedule time.

    UP trips run in the morning and the catalog publishes them on a 12h clock
    without a suffix, so they are always labelled AM. DOWN trips use the real
    meridiem.
    """
    if not text:
        return UNKNOWN_TIME
    if _has_meridiem(str(text)):
        return str(text)
    hm = _split_hours_minutes(str(text))
    if hm is None:
        return UNKNOWN_TIME
    hours, minutes = hm
    if direction is Direction.UP:
        period = "AM"
    else:
        period = "PM" if hours >= 12 else "AM"
    return f"{hours % 12 or 12:02d}:{minutes:02d} {period}"


def scheduled_minutes(text: str | None, direction: Direction) -> int | None:
    return parse_time_to_minutes(format_static_time(text, direction))
