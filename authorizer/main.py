from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from authorizer.keystone.accessor import ValidatorAccessor, default_accessor
from authorizer.logging_config import configure_app_logging
from authorizer.routers import health, tokens
from authorizer.settings import get_settings

logger = logging.getLogger(__name__)


def create_app(accessor: ValidatorAccessor | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        settings = get_settings()
        configure_app_logging(settings.log_level)
        logger.info("App startup beginning")

        # The validator is built lazily on the first request, so a Keystone
        # outage at boot does not keep the app from starting.
        app.state.accessor = accessor or default_accessor()

        yield
        # Shutdown (sessions are in-memory only)

    app = FastAPI(lifespan=lifespan)

    app.include_router(health.router)
    app.include_router(tokens.router)

    return app


app = create_app()
