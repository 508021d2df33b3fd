"""FastAPI application entry point for the TinyLink service.

Application Lifecycle Diagram
=============================
::
    ┌──────────────┐
    │  uvicorn     │
    │  startup     │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ create_app() │
    │ routes,      │
    │ handlers,    │
    │ metrics      │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ lifespan()   │
    │ startup:     │
    │ Database,    │
    │ LinkCache,   │
    │ LinkServices │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ Serve HTTP   │
    │ requests     │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ lifespan()   │
    │ shutdown:    │
    │ drain clicks,│
    │ close cache, │
    │ dispose db   │
    └──────────────┘

How to Use
===========
**Step 1 — Run with uvicorn**::
    uvicorn tinylink.main:app --host 0.0.0.0 --port 3000

**Step 2 — Make API calls**::
    curl -X POST http://localhost:3000/api/links \\
         -H "Content-Type: application/json" \\
         -d '{"targetUrl": "https://example.com"}'

    curl -i http://localhost:3000/<code>

Key Behaviours
===============
- Database tables are created on startup.
- The Redis cache is only connected when ``CACHE_ENABLED`` is true.
- Pending click updates are awaited before the engine is disposed.
- Request validation errors are reported as 400.
- Server-side failures return an opaque 500 body and are logged.
"""

__all__ = ["app", "create_app"]

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from tinylink.cache import LinkCache
from tinylink.config import Settings, get_settings
from tinylink.database import Database
from tinylink.dependencies import LinkServices
from tinylink.errors import AllocationExhausted, StorageError
from tinylink.logging_config import configure_logging
from tinylink.routes import router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = app.state.settings

    # Startup
    database = Database(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
    await database.create_all()
    cache = LinkCache.from_url(settings.REDIS_URL, settings.CACHE_TTL_SECONDS) if settings.CACHE_ENABLED else None
    app.state.services = LinkServices.build(settings, database, cache=cache)
    logger.info(f"{settings.APP_NAME} ready at {settings.short_url_base}")
    yield
    # Shutdown
    await app.state.services.close()
    logger.info("Shutdown complete")


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


async def allocation_exhausted_handler(request: Request, exc: AllocationExhausted) -> JSONResponse:
    logger.error(f"Allocation exhausted after {exc.attempts} attempts: {request.url.path}")
    return JSONResponse(status_code=500, content={"detail": str(exc)})


async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    logger.error(f"Storage error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled exception: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_NAME,
        version="1.0.0",
        description="Short links with click tracking",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(AllocationExhausted, allocation_exhausted_handler)
    app.add_exception_handler(StorageError, storage_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # registered before the router so the catch-all /{code} cannot shadow it
    Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=False,
        should_respect_env_var=False,
    ).instrument(app).expose(app, endpoint=settings.METRICS_PATH)

    app.include_router(router)
    return app


app = create_app()
