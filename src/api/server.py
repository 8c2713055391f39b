"""FastAPI status server — runs the heartbeat inside the app lifespan."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.api.health_routes import health_router
from src.config import settings
from src.health.reporter import FileHealthReporter
from src.monitor.heartbeat import HeartbeatService
from src.monitor.watchdog import LoopWatchdog

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start the watchdog and heartbeat on startup, stop them on shutdown."""
    watchdog = LoopWatchdog(max_lag=max(settings.heartbeat_interval, 15.0))
    await watchdog.start()

    service: HeartbeatService = app.state.heartbeat
    service.add_check("event-loop", watchdog.check)
    await service.start()
    logger.info("Status server ready, health record at %s", app.state.health_path)

    yield

    await service.stop()
    await watchdog.stop()


def create_app(service: HeartbeatService | None = None) -> FastAPI:
    """Create the status API. Pass a service to control the sink (tests)."""
    app = FastAPI(
        title="Safety — Health Status",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.health_path = settings.health_path
    app.state.probe_max_age = settings.probe_max_age
    app.state.heartbeat = service or HeartbeatService(
        FileHealthReporter(settings.health_path),
        interval=settings.heartbeat_interval,
        clear_on_shutdown=settings.clear_on_shutdown,
    )

    app.include_router(health_router)
    return app


app = create_app()
