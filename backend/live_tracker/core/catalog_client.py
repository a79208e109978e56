"""Async client for the static bus route catalog."""

import asyncio
import logging

import httpx

from live_tracker.config import settings
from live_tracker.core.trip import Direction, Route, Stop

logger = logging.getLogger(__name__)

# Retry configuration
MAX_RETRIES = 3
RETRY_BACKOFF = [2, 4, 8]  # seconds between retries


def _coord(raw) -> float | None:
    if raw is None or raw == "":
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return value if value == value else None  # NaN


def _time(raw) -> str | None:
    if raw is None:
        return None
    text = str(raw).strip()
    return text or None


def stop_from_record(index: int, item: dict) -> Stop:
    """Catalog stop entry; coordinate keys vary between producers."""
    return Stop(
        index=index,
        name=str(item.get("stop_name") or item.get("name") or item.get("location_name") or ""),
        lat=_coord(item.get("lat", item.get("latitude"))),
        lon=_coord(item.get("lon", item.get("longitude"))),
        scheduled_arrival=_time(item.get("arrival_time")),
        scheduled_departure=_time(item.get("departure_time")),
    )


def route_from_record(item: dict) -> Route | None:
    """Build a Route from one catalog record; None when it has no stop list."""
    raw_stops = item.get("stops")
    if not isinstance(raw_stops, list):
        return None
    stops = []
    for stop_item in raw_stops:
        if not isinstance(stop_item, dict):
            logger.debug("Skipping malformed stop entry: %r", stop_item)
            continue
        stops.append(stop_from_record(len(stops), stop_item))
    return Route(
        bus_id=item.get("bus_id", ""),
        route_id=int(item.get("route_id", 0) or 0),
        direction=Direction.parse(item.get("direction")),
        stops=tuple(stops),
        route_name=str(item.get("route_name") or ""),
        driver_id=item.get("driver_id", ""),
    )


class RouteCatalogClient:
    """Fetches the currently running bus routes with their schedules."""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._client = httpx.AsyncClient(
            base_url=settings.catalog_base_url,
            timeout=settings.catalog_timeout_seconds,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _get_with_retry(self, path: str, label: str) -> httpx.Response | None:
        """GET request with retry and exponential backoff."""
        for attempt in range(MAX_RETRIES + 1):
            try:
                resp = await self._client.get(path)
                resp.raise_for_status()
                return resp
            except (httpx.ReadTimeout, httpx.ConnectTimeout, httpx.ConnectError) as e:
                if attempt < MAX_RETRIES:
                    wait = RETRY_BACKOFF[attempt]
                    logger.warning(
                        "%s attempt %d/%d failed (%s), retrying in %ds",
                        label, attempt + 1, MAX_RETRIES + 1, type(e).__name__, wait,
                    )
                    await asyncio.sleep(wait)
                else:
                    logger.error("%s failed after %d attempts: %s", label, MAX_RETRIES + 1, e)
                    return None
            except httpx.HTTPStatusError as e:
                if e.response.status_code >= 500 and attempt < MAX_RETRIES:
                    wait = RETRY_BACKOFF[attempt]
                    logger.warning(
                        "%s attempt %d/%d got HTTP %d, retrying in %ds",
                        label, attempt + 1, MAX_RETRIES + 1, e.response.status_code, wait,
                    )
                    await asyncio.sleep(wait)
                else:
                    logger.error("Failed to fetch %s from catalog: %s", label, e)
                    return None
            except Exception:
                logger.exception("Failed to fetch %s from catalog", label)
                return None
        return None

    async def fetch_routes(self) -> list[Route]:
        """Fetch all routes currently in service."""
        resp = await self._get_with_retry("/get-current-bus-routes", "routes")
        if resp is None:
            return []
        try:
            data = resp.json()
        except ValueError:
            logger.exception("Failed to parse routes response from catalog")
            return []
        if not isinstance(data, list):
            logger.warning("Unexpected routes payload type %s", type(data).__name__)
            return []

        routes = []
        for item in data:
            try:
                route = route_from_record(item)
            except (ValueError, TypeError, AttributeError) as e:
                logger.debug("Skipping malformed route record: %s", e)
                continue
            if route is not None:
                routes.append(route)

        logger.info("Fetched %d routes from catalog", len(routes))
        return routes
