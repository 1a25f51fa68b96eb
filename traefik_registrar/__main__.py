# traefik_registrar/__main__.py
from __future__ import annotations

import logging
import sys

import uvicorn
from pydantic import ValidationError

from traefik_registrar.config import Settings, get_settings
from traefik_registrar.infra.logging import setup_logging
from traefik_registrar.main import create_app

logger = logging.getLogger("traefik_registrar")


def ensure_directories(settings: Settings) -> None:
    # the rest of the adapter expects <meshery_root>/bin to exist
    (settings.meshery_root / "bin").mkdir(mode=0o750, parents=True, exist_ok=True)


def main() -> int:
    try:
        settings = get_settings()
    except ValidationError as e:
        print(e, file=sys.stderr)
        return 1

    setup_logging(settings.service_name, debug=settings.debug, level_name=settings.log_level)

    try:
        ensure_directories(settings)
    except OSError as e:
        logger.error("Cannot create adapter directories under %s: %s", settings.meshery_root, e)
        return 1

    logger.info("Adapter listening at port: %s", settings.port)
    server = uvicorn.Server(
        uvicorn.Config(create_app(settings), host=settings.host, port=settings.port, log_config=None)
    )
    server.run()
    if not server.started:
        logger.error("Adapter failed to start on port %s", settings.port)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
