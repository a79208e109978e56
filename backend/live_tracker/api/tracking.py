"""Tracking state REST endpoints."""

from fastapi import APIRouter, HTTPException

from live_tracker.schemas.tracking import StopProgress, TrackingSnapshot

router = APIRouter(prefix="/api/tracking", tags=["tracking"])

# Will be set by main.py
manager = None


def _active_session():
    if manager is None or manager.session is None:
        raise HTTPException(status_code=404, detail="No trip selected")
    return manager.session


@router.get("", response_model=TrackingSnapshot)
async def get_tracking():
    """Latest snapshot of the active trip."""
    return _active_session().snapshot


@router.get("/stops", response_model=list[StopProgress])
async def get_stop_progress():
    """Per-stop schedule, ETA, reached flag and delay for the active trip."""
    return _active_session().stop_progress()
