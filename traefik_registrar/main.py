# traefik_registrar/main.py
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.responses import ORJSONResponse

from traefik_registrar.api.routers import health_routes
from traefik_registrar.config import Settings, get_settings
from traefik_registrar.oam.register import CapabilityRegistrar
from traefik_registrar.scheduler import RegistrationScheduler

logger = logging.getLogger("traefik_registrar.main")


def create_app(settings: Optional[Settings] = None, *, registrar: Optional[CapabilityRegistrar] = None) -> FastAPI:
    settings = settings or get_settings()
    registrar = registrar or CapabilityRegistrar(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """
        App lifespan:
          - static pass (templates) once, in the background, unless FORCE_DYNAMIC_REG
          - dynamic pass (chart) now and every REGISTRATION_INTERVAL_HOURS
          - shutdown: stop the scheduler, cancel a still-running static pass
        """
        logger.info("%s starting up; registering with %s as %s", settings.service_name, registrar.runtime, registrar.host)

        static_task: Optional[asyncio.Task] = None
        if settings.force_dynamic_reg:
            logger.info("FORCE_DYNAMIC_REG set; skipping static registration")
        else:
            static_task = asyncio.create_task(registrar.run_static_pass(), name="static-registration")

        scheduler = RegistrationScheduler(
            registrar.run_dynamic_pass,
            interval_seconds=settings.registration_interval_hours * 3600,
        )
        app.state.scheduler = scheduler
        await scheduler.start()

        try:
            yield
        finally:
            try:
                await scheduler.stop()
            except Exception:
                logger.warning("Error stopping registration scheduler", exc_info=True)

            if static_task is not None and not static_task.done():
                static_task.cancel()
                try:
                    await static_task
                except asyncio.CancelledError:
                    pass

            logger.info("%s shutdown complete", settings.service_name)

    app = FastAPI(
        title="Traefik Mesh Capability Registrar",
        description="Registers Traefik Mesh workloads and traits with Meshery",
        version=settings.service_version,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.registrar = registrar
    app.state.scheduler = None
    app.include_router(health_routes.router)
    return app
