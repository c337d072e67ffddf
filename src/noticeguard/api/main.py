from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from noticeguard import __version__
from noticeguard.api.deps import reset_guard
from noticeguard.api.routes import allowlist, health, notices, settings as settings_routes
from noticeguard.config import get_settings
from noticeguard.logging import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    configure_logging()
    yield
    reset_guard()


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="noticeguard API",
        version=__version__,
        docs_url=f"{settings.api_prefix}/docs",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        lifespan=lifespan,
    )

    app.include_router(allowlist.router, prefix=settings.api_prefix, tags=["allowlist"])
    app.include_router(notices.router, prefix=settings.api_prefix, tags=["notices"])
    app.include_router(settings_routes.router, prefix=settings.api_prefix, tags=["settings"])
    app.include_router(health.router, tags=["health"])
    return app


app = create_app()
