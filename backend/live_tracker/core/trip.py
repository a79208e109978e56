"""Static trip data (route, stops) and live GPS fixes."""

import datetime
import enum
from dataclasses import dataclass, field


class Direction(str, enum.Enum):
    UP = "UP"
    DOWN = "DOWN"

    @classmethod
    def parse(cls, raw) -> "Direction":
        """Catalog direction label to enum; anything but 'up' is DOWN."""
        return cls.UP if str(raw or "").strip().upper() == "UP" else cls.DOWN


@dataclass(frozen=True)
class Stop:
    index: int
    name: str
    lat: float | None
    lon: float | None
    scheduled_arrival: str | None = None
    scheduled_departure: str | None = None

    @property
    def scheduled_time(self) -> str | None:
        return self.scheduled_arrival or self.scheduled_departure

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lon is not None


@dataclass(frozen=True)
class Route:
    bus_id: str | int
    route_id: int
    direction: Direction
    stops: tuple[Stop, ...] = ()
    route_name: str = ""
    driver_id: str | int = ""


@dataclass(frozen=True)
class GPSFix:
    lat: float
    lon: float
    speed: float = 0.0
    received_at: datetime.datetime = field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc),
    )
