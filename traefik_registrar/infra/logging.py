# traefik_registrar/infra/logging.py
from __future__ import annotations
import logging
import os

_LEVELS: dict[str, int] = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}


def setup_logging(service_name: str = "traefik-mesh-adaptor", *, debug: bool = False, level_name: str | None = None) -> None:
    """
    Minimal, consistent structured-ish logging for the adapter process.
    DEBUG=true wins over LOG_LEVEL.
    """
    name = (level_name or os.getenv("LOG_LEVEL", "INFO")).upper()
    level = logging.DEBUG if debug else _LEVELS.get(name, logging.INFO)
    logging.basicConfig(
        level=level,
        format=(
            "%(asctime)s | %(levelname)s | %(name)s | "
            f"svc={service_name} | %(message)s"
        ),
        force=True,
    )
    # quiet noisy deps
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(level)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
