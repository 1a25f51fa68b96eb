# traefik_registrar/api/routers/health_routes.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Request

logger = logging.getLogger("traefik_registrar.api.health")

router = APIRouter(tags=["meta"])


@router.get("/", summary="Root metadata")
def root(request: Request) -> Dict[str, Any]:
    """
    Root landing with links and metadata.
    """
    settings = request.app.state.settings
    return {
        "service": settings.service_name,
        "status": "ok",
        "message": "traefik mesh capability registrar",
        "health": "/health",
        "version": "/version",
        "registrations": "/registrations",
    }


@router.get("/health", summary="Liveness check")
def health(request: Request) -> Dict[str, Any]:
    return {
        "status": "ok",
        "service": request.app.state.settings.service_name,
        "at": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/version", summary="Service version")
def version(request: Request) -> Dict[str, Any]:
    settings = request.app.state.settings
    return {
        "service": settings.service_name,
        "version": settings.service_version,
        "git_sha": settings.git_sha,
    }


@router.get("/registrations", summary="Last registration report per pass")
def registrations(request: Request) -> Dict[str, Any]:
    registrar = request.app.state.registrar
    scheduler = getattr(request.app.state, "scheduler", None)
    return {
        "target": registrar.runtime,
        "host": registrar.host,
        "reports": {name: r.model_dump(mode="json") for name, r in registrar.last_reports.items()},
        "scheduler": {
            "running": bool(scheduler and scheduler.running),
            "busy": bool(scheduler and scheduler.busy),
            "runs": scheduler.runs if scheduler else 0,
            "skipped": scheduler.skipped if scheduler else 0,
        },
    }
