import asyncio
import logging
import sys

import uvicorn

from callboard.config import settings
from callboard.delivery.web.app import create_app
from callboard.errors import StoreConfigError
from callboard.storage.database import Database
from callboard.utils.logging import setup_logging

logger = logging.getLogger(__name__)


async def main() -> None:
    setup_logging(settings.log_level)
    logger.info("Starting Callboard")

    try:
        database = Database.from_settings(settings)
    except StoreConfigError as exc:
        logger.critical("Cannot start: %s", exc)
        raise SystemExit(1) from exc

    app = create_app(database, settings)
    config = uvicorn.Config(
        app,
        host=settings.web_host,
        port=settings.web_port,
        log_level=settings.log_level.lower(),
    )
    server = uvicorn.Server(config)
    await server.serve()


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    run()
