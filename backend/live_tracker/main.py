"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from live_tracker.api import diagnostics, routes, tracking, trips, ws
from live_tracker.config import settings
from live_tracker.core.broadcaster import Broadcaster
from live_tracker.core.catalog_client import RouteCatalogClient
from live_tracker.core.transport_channel import TransportChannel
from live_tracker.core.trip_manager import TripManager

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    channel = TransportChannel()
    broadcaster = Broadcaster()
    catalog = RouteCatalogClient()
    manager = TripManager(channel, broadcaster)

    # Wire up API modules
    trips.manager = manager
    tracking.manager = manager
    diagnostics.manager = manager
    routes.catalog = catalog
    ws.broadcaster = broadcaster

    await channel.connect()
    logger.info("Live tracker started - feed %s", settings.live_ws_url)

    yield

    # Shutdown
    await manager.shutdown()
    await catalog.close()
    logger.info("Live tracker shut down")


app = FastAPI(
    title="Live Bus Tracker",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(routes.router)
app.include_router(trips.router)
app.include_router(tracking.router)
app.include_router(diagnostics.router)
app.include_router(ws.router)


@app.get("/api/health")
async def health():
    return {"status": "ok"}
