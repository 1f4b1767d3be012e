from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from app.errors import register_exception_handlers
from logging_config import configure_logging
from services.modifiers import SERVER_VERSION
from services.server import build_default_server, build_default_store


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    # Fail at startup, not on the first request, when the configuration is broken.
    server = build_default_server()
    try:
        yield
    finally:
        server.close()
        build_default_server.cache_clear()
        build_default_store.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="SpaceAPI Server",
        description="Publishes the hackerspace status document and accepts signed sensor updates.",
        version=SERVER_VERSION,
        lifespan=lifespan,
    )
    register_exception_handlers(app)
    app.include_router(router)
    return app


app = create_app()
