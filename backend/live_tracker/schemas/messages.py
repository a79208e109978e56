"""Wire formats of the live passenger feed.

Producers are inconsistent about key names, so inbound fields accept every
alias seen in the wild.
"""

import logging
from dataclasses import dataclass, field

from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator

from live_tracker.core.trip import GPSFix, Route

logger = logging.getLogger(__name__)

_CHECKPOINT_KEYS = ("arrival_status", "arrivalStatus")


class InboundFix(BaseModel):
    latitude: float = Field(
        validation_alias=AliasChoices("latitude", "lat", "lattitude", "lattude"),
        allow_inf_nan=False,
    )
    longitude: float = Field(
        validation_alias=AliasChoices("longitude", "lon", "long"),
        allow_inf_nan=False,
    )
    speed: float = Field(
        default=0.0,
        validation_alias=AliasChoices("speed", "speedInMeters", "speed_meters"),
    )

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _reject_bool(cls, v):
        # JSON true/false would otherwise coerce to 1.0/0.0
        if isinstance(v, bool):
            raise ValueError("boolean is not a coordinate")
        return v

    @field_validator("speed", mode="before")
    @classmethod
    def _lenient_speed(cls, v):
        try:
            speed = float(v)
        except (TypeError, ValueError):
            return 0.0
        return speed if speed == speed else 0.0  # NaN

    def to_fix(self) -> GPSFix:
        return GPSFix(lat=self.latitude, lon=self.longitude, speed=self.speed)


def parse_fix(data: dict) -> GPSFix | None:
    """GPS fix from an inbound message, None when coordinates are unusable."""
    try:
        return InboundFix.model_validate(data).to_fix()
    except ValidationError:
        return None


def parse_checkpoints(data: dict) -> dict[int, str]:
    """1-based stop sequence -> reported arrival time.

    Every numeric key is kept, even with an empty time, so the latest
    sequence is always the highest key the server sent.
    """
    raw = None
    for key in _CHECKPOINT_KEYS:
        if data.get(key) is not None:
            raw = data[key]
            break
    if not isinstance(raw, dict):
        return {}
    checkpoints: dict[int, str] = {}
    for seq, reported in raw.items():
        try:
            seq_num = int(seq)
        except (TypeError, ValueError):
            logger.debug("Skipping checkpoint with non-numeric sequence %r", seq)
            continue
        checkpoints[seq_num] = "" if reported is None else str(reported)
    return checkpoints


@dataclass(frozen=True)
class LiveMessage:
    fix: GPSFix | None = None
    checkpoints: dict[int, str] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, data: dict) -> "LiveMessage":
        return cls(fix=parse_fix(data), checkpoints=parse_checkpoints(data))


class SubscriptionMessage(BaseModel):
    bus_id: str | int
    route_id: int
    route_name: str | None = None
    driver_id: str | int
    direction: str

    @classmethod
    def for_route(cls, route: Route) -> "SubscriptionMessage":
        return cls(
            bus_id=route.bus_id,
            route_id=route.route_id,
            route_name=route.route_name,
            driver_id=route.driver_id,
            direction=route.direction.value,
        )


class ReleaseMessage(BaseModel):
    driver_id: str | int
    route_id: int = 0
    direction: str = "up"
