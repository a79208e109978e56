"""Diagnostics API for the live channel and the active session."""

from fastapi import APIRouter

router = APIRouter(prefix="/api/diagnostics", tags=["diagnostics"])

# Will be set by main.py
manager = None


@router.get("")
async def get_diagnostics():
    """Channel status, replay cache and recent tracking events."""
    if manager is None:
        return {"error": "Tracker not initialized"}
    return manager.get_diagnostics()


@router.get("/session")
async def get_session_diagnostics(limit: int = 50):
    """Recent reachability and ETA events of the active session."""
    if manager is None:
        return {"error": "Tracker not initialized"}
    if manager.session is None:
        return {"error": "No trip selected"}
    return manager.session.get_diagnostics(limit=limit)
