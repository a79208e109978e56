"""Trip selection and host lifecycle endpoints."""

from fastapi import APIRouter, HTTPException

from live_tracker.core.catalog_client import route_from_record
from live_tracker.schemas.route import TripRequest
from live_tracker.schemas.tracking import LifecycleEvent, TrackingSnapshot

router = APIRouter(prefix="/api", tags=["trips"])

# Will be set by main.py
manager = None

APP_STATES = {"active", "background", "inactive"}


@router.post("/trips", response_model=TrackingSnapshot)
async def start_trip(request: TripRequest):
    """Start tracking the selected trip, replacing any current one."""
    if manager is None:
        raise HTTPException(status_code=503, detail="Tracker not initialized")
    route = route_from_record(request.model_dump())
    if route is None or not route.stops:
        raise HTTPException(status_code=422, detail="Trip has no stops")
    session = await manager.start_trip(route)
    return session.snapshot


@router.delete("/trips/current")
async def end_trip():
    """Leave the current trip view."""
    if manager is None:
        raise HTTPException(status_code=503, detail="Tracker not initialized")
    ended = await manager.end_trip()
    return {"ended": ended}


@router.post("/lifecycle")
async def app_lifecycle(event: LifecycleEvent):
    """Host foreground/background signal."""
    if manager is None:
        raise HTTPException(status_code=503, detail="Tracker not initialized")
    if event.state not in APP_STATES:
        raise HTTPException(status_code=422, detail=f"Unknown app state {event.state!r}")
    await manager.handle_app_state(event.state)
    return {"connection_status": manager.channel.status.value}
