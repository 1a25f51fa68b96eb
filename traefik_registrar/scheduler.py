# traefik_registrar/scheduler.py
"""Periodic re-registration.

Uses APScheduler's AsyncIOScheduler with a single interval job whose first
run happens immediately. Runs are single-flight: a tick that fires while the
previous run is still going is skipped, not queued.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger("traefik_registrar.scheduler")

JOB_ID = "dynamic-registration"


class RegistrationScheduler:
    def __init__(
        self,
        job: Callable[[], Awaitable[Any]],
        *,
        interval_seconds: float,
        run_on_start: bool = True,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.job = job
        self.interval_seconds = interval_seconds
        self.run_on_start = run_on_start
        self.scheduler = AsyncIOScheduler(timezone="UTC")
        self._lock = asyncio.Lock()
        self._running = False
        self.runs = 0
        self.skipped = 0

    @property
    def running(self) -> bool:
        return self._running

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def start(self) -> None:
        """Start ticking. Idempotent."""
        if self._running:
            logger.warning("Registration scheduler already running")
            return

        self.scheduler.start()
        self._running = True
        extra = {}
        if self.run_on_start:
            # next_run_time=None would pause the job, so only pass it when set
            extra["next_run_time"] = datetime.now(timezone.utc)
        self.scheduler.add_job(
            func=self.run_once,
            trigger=IntervalTrigger(seconds=self.interval_seconds, timezone="UTC"),
            id=JOB_ID,
            name="Dynamic capability registration",
            max_instances=1,
            coalesce=True,
            # a late start-up run (busy loop) still runs instead of being dropped
            misfire_grace_time=None,
            replace_existing=True,
            **extra,
        )
        logger.info("Registration scheduler started (every %.0fs)", self.interval_seconds)

    async def stop(self) -> None:
        if not self._running:
            logger.warning("Registration scheduler not running")
            return
        self.scheduler.shutdown(wait=False)
        self._running = False
        logger.info("Registration scheduler stopped")

    async def run_once(self) -> bool:
        """Run the job unless a previous run is still in progress. Returns whether it ran."""
        if self._lock.locked():
            self.skipped += 1
            logger.warning("Previous registration still running; skipping this tick")
            return False

        async with self._lock:
            self.runs += 1
            try:
                await self.job()
            except Exception:
                logger.exception("Registration run failed")
        return True
