from pydantic import BaseModel

from live_tracker.core.trip import Route


class RouteStopInfo(BaseModel):
    index: int
    name: str
    lat: float | None = None
    lon: float | None = None
    arrival_time: str | None = None
    departure_time: str | None = None


class RouteInfo(BaseModel):
    bus_id: str | int
    route_id: int
    route_name: str
    driver_id: str | int
    direction: str
    stops: list[RouteStopInfo] = []

    @classmethod
    def from_route(cls, route: Route) -> "RouteInfo":
        return cls(
            bus_id=route.bus_id,
            route_id=route.route_id,
            route_name=route.route_name,
            driver_id=route.driver_id,
            direction=route.direction.value,
            stops=[
                RouteStopInfo(
                    index=s.index,
                    name=s.name,
                    lat=s.lat,
                    lon=s.lon,
                    arrival_time=s.scheduled_arrival,
                    departure_time=s.scheduled_departure,
                )
                for s in route.stops
            ],
        )


class TripRequest(BaseModel):
    """Catalog route record selected by the passenger."""

    bus_id: str | int
    route_id: int
    driver_id: str | int = ""
    direction: str = "DOWN"
    route_name: str | None = None
    stops: list[dict] = []
