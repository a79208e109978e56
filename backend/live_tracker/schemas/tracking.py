import datetime

from pydantic import BaseModel, ConfigDict

from live_tracker.core.eta_projector import DelayStatus
from live_tracker.core.transport_channel import ConnectionStatus


class FixInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float
    lon: float
    speed: float
    received_at: datetime.datetime


class TrackingSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    bus_id: str | int
    route_id: int
    segment_index: int = 0
    segment_progress: float = 0.0
    last_confirmed_stop_index: int = 0
    reached: frozenset[int] = frozenset()
    eta_by_stop: dict[int, str] = {}
    connection_status: ConnectionStatus = ConnectionStatus.SUSPENDED
    last_fix: FixInfo | None = None
    updated_at: datetime.datetime | None = None


class StopProgress(BaseModel):
    index: int
    name: str
    scheduled: str
    eta: str
    reached: bool
    delay_status: DelayStatus
    delay_text: str


class LifecycleEvent(BaseModel):
    state: str
