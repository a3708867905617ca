"""ASGI application for LegIndex.

The engine lives for the lifetime of the app: the lifespan hook builds it,
connects it to the index and the bill store, starts its event consumer and
publishes it to the endpoints through ``api.deps``.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from legindex import __version__
from legindex.api.deps import set_engine
from legindex.api.v1.router import router as v1_router
from legindex.config.settings import Settings
from legindex.core.engine import BillIndexEngine
from legindex.observability.logging import setup_logging

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path("legindex-config.yaml")


def _default_settings() -> Settings:
    if DEFAULT_CONFIG_FILE.is_file():
        logger.info("Loading configuration from %s", DEFAULT_CONFIG_FILE)
        return Settings.from_yaml(DEFAULT_CONFIG_FILE)
    return Settings()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the LegIndex FastAPI app.

    Args:
        settings: Settings to run with. When omitted, ``legindex-config.yaml``
            in the working directory is used if present, else the environment.
    """
    settings = settings or _default_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        setup_logging(settings.observability)
        logger.info("Starting LegIndex v%s (index backend: %s)", __version__, settings.index.backend)

        engine = BillIndexEngine(settings)
        await engine.initialize()
        engine.start()
        set_engine(engine)
        app.state.engine = engine

        try:
            yield
        finally:
            logger.info("Stopping LegIndex")
            set_engine(None)
            await engine.shutdown()

    app = FastAPI(
        title="LegIndex",
        description="Keeps the bill search index in step with the bill store and serves bill searches.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )
    app.include_router(v1_router, prefix="/v1")
    return app
