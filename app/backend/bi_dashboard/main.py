"""FastAPI application entrypoint."""

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bi_dashboard.api.router import api_router
from bi_dashboard.core.config import get_settings
from bi_dashboard.core.logging_config import setup_logging
from bi_dashboard.db.health import monitor_database_health
from bi_dashboard.db.session import SessionLocal
from bi_dashboard.repositories.warehouse_repository import WarehouseUnavailableError

logger = logging.getLogger(__name__)


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    monitor: asyncio.Task[None] | None = None
    if settings.db_health_check_interval_seconds > 0:
        monitor = asyncio.create_task(
            monitor_database_health(SessionLocal, settings.db_health_check_interval_seconds)
        )
    logger.info("%s started (%s)", settings.app_name, settings.app_env)
    try:
        yield
    finally:
        if monitor is not None:
            monitor.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await monitor


async def warehouse_unavailable_handler(request: Request, exc: WarehouseUnavailableError) -> JSONResponse:
    logger.error("%s %s failed: %s", request.method, request.url.path, exc.cause)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": f"{exc}. The data warehouse is unavailable."},
    )


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""

    settings = get_settings()
    setup_logging(settings.log_level, settings.log_json)

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(WarehouseUnavailableError, warehouse_unavailable_handler)
    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/", tags=["system"])
    def root() -> dict[str, str]:
        return {"service": settings.app_name, "status": "running"}

    return app


app = create_app()
