"""Route catalog REST endpoints."""

from fastapi import APIRouter

from live_tracker.schemas.route import RouteInfo

router = APIRouter(prefix="/api/routes", tags=["routes"])

# Will be set by main.py
catalog = None


@router.get("", response_model=list[RouteInfo])
async def list_routes():
    """Get all routes currently in service with their schedules."""
    if catalog is None:
        return []
    routes = await catalog.fetch_routes()
    return [RouteInfo.from_route(r) for r in routes]
