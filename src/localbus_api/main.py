"""FastAPI application entry point."""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from localbus_api.config import get_settings
from localbus_api.database import check_database_connection, close_database
from localbus_api.logging import (
    bind_request_context,
    clear_request_context,
    get_logger,
    setup_logging,
)
from localbus_api.routers.admin import router as admin_router
from localbus_api.routers.analytics import router as analytics_router
from localbus_api.routers.proxy import router as proxy_router
from localbus_api.services.engine import get_transit_engine
from localbus_api.services.provider.client import ProviderClient
from localbus_api.services.reference.refresher import StaticRefresher
from localbus_api.services.scheduler import get_scheduler, reset_scheduler

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    setup_logging()
    settings = get_settings()
    logger.info("Starting LocalBus Stop Analytics API", environment=settings.environment)

    # Detection needs a network before the first provider refresh lands
    engine = get_transit_engine()
    try:
        refresher = StaticRefresher(ProviderClient.from_settings(settings), engine)
        await refresher.load_from_database()
    except Exception as exc:
        logger.warning("Could not load reference cache from database", error=str(exc))

    missing_env = settings.missing_required_env()
    if settings.scheduler_auto_start and not missing_env:
        await get_scheduler().start()
    elif missing_env:
        logger.warning("Background loops not started", missing_env=missing_env)

    yield

    scheduler = get_scheduler()
    if scheduler.is_running:
        await scheduler.stop()
    reset_scheduler()

    logger.info("Shutting down LocalBus Stop Analytics API")
    await close_database()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description=(
            "Live vehicle ingestion with geofenced stop-visit detection and "
            "empirical per-stop arrival analytics"
        ),
        lifespan=lifespan,
        docs_url="/docs" if settings.environment != "production" else None,
        redoc_url="/redoc" if settings.environment != "production" else None,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.environment == "development" else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request ID middleware
    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next: Any) -> Any:
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        bind_request_context(request_id=request_id, path=request.url.path)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        clear_request_context()
        return response

    # Include routers
    app.include_router(proxy_router)
    app.include_router(analytics_router)
    app.include_router(admin_router)

    # Health endpoint
    @app.get("/health", tags=["meta"])
    async def health_check() -> dict[str, Any]:
        """Liveness plus database, loop and cache status."""
        settings = get_settings()
        missing_env = settings.missing_required_env()
        db_healthy = await check_database_connection()

        scheduler = get_scheduler()
        loops_running = scheduler.is_running
        loops_healthy = loops_running or not settings.scheduler_auto_start

        status = (
            "unhealthy"
            if missing_env
            else "healthy"
            if (db_healthy and loops_healthy)
            else "degraded"
        )

        issues: list[str] = []
        if missing_env:
            issues.append("Missing required environment variables: " + ", ".join(missing_env))
        if settings.scheduler_auto_start and not loops_running:
            issues.append("Background loops are not running")

        return {
            "ok": True,
            "service": settings.app_name,
            "status": status,
            "version": settings.app_version,
            "environment": settings.environment,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "checks": {
                "database": db_healthy,
                "loops": {
                    name: {
                        "running": loop["running"],
                        "cycleCount": loop["cycle_count"],
                        "lastFinishedAt": loop["last_finished_at"],
                        "lastError": loop["last_error"],
                    }
                    for name, loop in scheduler.status().items()
                },
                "engine": get_transit_engine().status(),
            },
            "issues": issues,
        }

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled exception", exc_info=exc, path=request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred",
            },
        )

    return app


app = create_app()
