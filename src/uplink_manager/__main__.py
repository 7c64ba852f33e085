"""Run the uplink manager API with uvicorn."""

from __future__ import annotations

import uvicorn

from .app import create_app
from .settings import UplinkSettings, configure_logging


def main() -> None:
    settings = UplinkSettings.from_env()
    configure_logging(settings.log_level)
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
