"""Application entrypoint: serve the weather proxy."""

from __future__ import annotations

import uvicorn

from stratus.config import get_settings
from stratus.logging import configure_logging, logger
from stratus.proxy.app import create_app


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level, json_output=settings.environment != "dev")

    app = create_app(settings)
    logger.info(
        "proxy_listening",
        host=settings.proxy.host,
        port=settings.proxy.port,
        environment=settings.environment,
    )
    uvicorn.run(app, host=settings.proxy.host, port=settings.proxy.port, log_config=None)


if __name__ == "__main__":
    main()
