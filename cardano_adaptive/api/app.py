"""FastAPI application factory with lifespan for Cardano Adaptive."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from cardano_adaptive import __version__
from cardano_adaptive.errors import AdaptiveError
from cardano_adaptive.settings import get_settings
from cardano_adaptive.storage.database import create_all_tables, dispose_engine


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup: ensure DB schema. Shutdown: dispose engine."""
    await create_all_tables()
    yield
    await dispose_engine()


async def adaptive_error_handler(request: Request, exc: AdaptiveError) -> JSONResponse:
    logger.warning(f"{request.method} {request.url.path} -> {exc.status_code} {exc.category}: {exc}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.add_exception_handler(AdaptiveError, adaptive_error_handler)

    # ── mount routers ──
    from cardano_adaptive.api.routes import actions, dapps, health, indexer, intents

    app.include_router(health.router)
    app.include_router(intents.router, prefix="/api", tags=["intents"])
    app.include_router(actions.router, prefix="/api", tags=["actions"])
    app.include_router(dapps.router, prefix="/api/dapps", tags=["dapps"])
    app.include_router(indexer.router, prefix="/api/indexer", tags=["indexer"])

    return app
