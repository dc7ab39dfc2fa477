import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from callboard.config import Settings, settings as default_settings
from callboard.delivery.web.routes import router
from callboard.storage.database import Database

logger = logging.getLogger(__name__)


def create_app(database: Database, app_settings: Settings | None = None) -> FastAPI:
    """Build the API around an already-constructed store handle.

    The lifespan connects the store on startup and always closes it on
    shutdown; callers that connect it themselves (tests) can skip lifespan.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await database.connect()
        try:
            yield
        finally:
            await database.close()

    app = FastAPI(title="Callboard", version="0.1.0", lifespan=lifespan)
    app.state.database = database
    app.state.settings = app_settings or default_settings
    app.include_router(router)
    return app
