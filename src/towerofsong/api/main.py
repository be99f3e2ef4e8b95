"""FastAPI application entry point for the Tower of Song API.

``create_app`` wires the service objects (catalog, sync engine, scheduler,
token store) for one process. The lifespan handler loads the library
configuration and migrates the catalog before serving; either failing aborts
startup. The first sync pass runs in the background so requests are served
while the library is being indexed.

Run with:
    uvicorn towerofsong.api.main:app --host 0.0.0.0 --port 8080
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from towerofsong.api.middleware.request_id import RequestIDMiddleware
from towerofsong.api.routers import admin, auth, library
from towerofsong.core.catalog import CatalogStore
from towerofsong.core.config import Settings, load_library_config, settings as default_settings
from towerofsong.core.db import create_engine, create_session_factory, init_db
from towerofsong.core.logger import setup_logging
from towerofsong.core.token_store import TokenStore
from towerofsong.worker.scanner import SyncEngine
from towerofsong.worker.scheduler import ScanScheduler


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: config, database, scheduler. Shutdown: cancel passes, dispose."""
    settings: Settings = app.state.settings
    setup_logging(settings)

    # ConfigLoadError / StoreInitError propagate: the server must not start.
    library_config = load_library_config(settings.CONFIG_FILE)
    engine = create_engine(settings.DB_URL, echo=settings.DB_ECHO)
    await init_db(engine)

    catalog = CatalogStore(create_session_factory(engine))
    sync_engine = SyncEngine(
        catalog,
        music_folders=library_config.music_folders,
        extensions=settings.AUDIO_EXTENSIONS,
    )
    scheduler = ScanScheduler(
        sync_engine,
        interval=settings.SCAN_INTERVAL_HOURS * 3600,
        run_on_start=settings.SCAN_ON_STARTUP,
    )

    app.state.library_config = library_config
    app.state.catalog = catalog
    app.state.scheduler = scheduler
    scheduler.start()
    logger.info(f"Serving {len(library_config.music_folders)} music folder(s)")

    try:
        yield
    finally:
        await scheduler.stop()
        sync_engine.shutdown()
        await engine.dispose()
        logger.info("Shutdown complete")


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the traceback; clients only get a generic failure."""
    logger.opt(exception=exc).error(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    app = FastAPI(
        title="Tower of Song API",
        version="0.1.0",
        description="Personal music library: catalog, search and streaming",
        lifespan=lifespan,
    )
    app.state.settings = settings or default_settings
    app.state.token_store = TokenStore()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app.state.settings.CORS_ORIGINS,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.add_middleware(RequestIDMiddleware)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(auth.router, prefix="/api/v1/auth", tags=["Auth"])
    app.include_router(library.router, prefix="/api/v1/library", tags=["Library"])
    app.include_router(admin.router, prefix="/api/v1/admin", tags=["Admin"])

    @app.get("/")
    async def root():
        return {"message": "Tower of Song API is running"}

    return app


app = create_app()
