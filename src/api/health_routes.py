"""API routes for the health record and heartbeat service.

Endpoints:
  GET  /health              — probe the health record (200 healthy / 503 otherwise)
  GET  /api/heartbeat       — heartbeat service status
  POST /api/heartbeat/beat  — evaluate checks and rewrite the record now
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from src.health.probe import run_probe
from src.health.record import HealthRecordError

logger = logging.getLogger(__name__)

health_router = APIRouter()


@health_router.get("/health")
def health(request: Request) -> JSONResponse:
    """Same verdict the container probe would reach, over HTTP."""
    result = run_probe(request.app.state.health_path, max_age=request.app.state.probe_max_age)
    return JSONResponse(
        status_code=200 if result.healthy else 503,
        content=result.to_dict(),
    )


@health_router.get("/api/heartbeat")
def heartbeat_status(request: Request) -> dict[str, Any]:
    return request.app.state.heartbeat.status()


@health_router.post("/api/heartbeat/beat")
def heartbeat_beat(request: Request) -> dict[str, Any]:
    """Force an immediate heartbeat."""
    service = request.app.state.heartbeat
    try:
        beat = service.beat()
    except HealthRecordError as e:
        logger.error("Manual heartbeat failed: %s", e)
        raise HTTPException(status_code=500, detail=str(e)) from e
    return {"beat": beat, "record": run_probe(request.app.state.health_path).to_dict()}
