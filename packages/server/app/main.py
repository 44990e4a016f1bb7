"""
NotifyHub API Server

Entry point for the FastAPI application.
"""

import asyncio

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from app.api import router as api_router
from app.core.config import get_settings
from app.core.database import check_database, init_db
from app.core.delivery import manager
from app.core.errors import install_error_handlers
from app.core.log import configure_logging
from app.core.metrics import metrics
from app.core.middleware import RequestContextMiddleware, SecurityHeadersMiddleware
from app.core.redis import check_redis, close_redis, redis_enabled
from app.tasks.orphan_sweep import run_orphan_sweep

settings = get_settings()
log = structlog.get_logger()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="NotifyHub",
        description="Notification and subscription fan-out for threads and chats.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # Middleware, outermost first
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Content-Type"],
    )

    install_error_handlers(app)
    app.include_router(api_router)

    background: list[asyncio.Task] = []

    @app.get("/health", tags=["System"])
    async def health_check():
        """Health check endpoint for liveness probes."""
        return {"status": "ok"}

    @app.get("/ready", tags=["System"])
    async def readiness_check():
        """Readiness check: the database answers and, when enabled, Redis does too."""
        checks = {"database": await check_database()}
        if redis_enabled():
            checks["redis"] = await check_redis()

        ready = all(v == "ok" for v in checks.values())
        return {"status": "ready" if ready else "degraded", "checks": checks}

    @app.get("/metrics", tags=["System"], response_class=PlainTextResponse)
    async def metrics_endpoint():
        """Prometheus text exposition of in-process counters."""
        metrics.set_gauge("ws_connections_active", len(manager.connections))
        return metrics.to_prometheus()

    @app.on_event("startup")
    async def on_startup():
        configure_logging(settings.log_level, settings.log_format)
        log.info("notifyhub.starting", redis_relay=redis_enabled())
        if settings.init_db_on_startup:
            await init_db()
        await manager.start_relay()
        if settings.orphan_sweep_enabled:
            background.append(asyncio.create_task(run_orphan_sweep()))

    @app.on_event("shutdown")
    async def on_shutdown():
        log.info("notifyhub.shutting_down")
        for task in background:
            task.cancel()
        await asyncio.gather(*background, return_exceptions=True)
        background.clear()
        await manager.stop_relay()
        await close_redis()

    return app


app = create_app()


def run() -> None:
    """CLI entry point: serve the API with uvicorn on the configured address."""
    uvicorn.run("app.main:app", host=settings.host, port=settings.port)
