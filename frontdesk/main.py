"""FastAPI application hosting the room availability engine."""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from frontdesk.api.v1.router import api_router
from frontdesk.config import Settings, settings
from frontdesk.core.clock import SystemClock
from frontdesk.core.exceptions import AppException
from frontdesk.core.scheduler import ReconciliationScheduler
from frontdesk.gateways.base import StoreType
from frontdesk.gateways.memory import InMemoryStore
from frontdesk.gateways.redis_store import RedisStore
from frontdesk.services.availability_engine import AvailabilityEngine

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


def build_store(config: Settings) -> InMemoryStore | RedisStore:
    """Create the room/booking store selected by configuration."""
    if config.store_backend == StoreType.MEMORY:
        return InMemoryStore(rooms={}, bookings={})
    return RedisStore(redis_url=config.redis_url, prefix=config.store_prefix)


def build_engine(store, config: Settings) -> AvailabilityEngine:
    tz = ZoneInfo(config.hotel_timezone)
    return AvailabilityEngine(bookings=store, rooms=store, clock=SystemClock(tz), tz=tz)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan events."""
    # Startup
    store = getattr(app.state, "store", None) or build_store(settings)
    engine = build_engine(store, settings)
    scheduler = ReconciliationScheduler(
        engine,
        interval_seconds=settings.reconcile_interval_seconds,
        startup_delay_seconds=settings.startup_delay_seconds,
    )
    app.state.store = store
    app.state.engine = engine
    app.state.scheduler = scheduler

    await scheduler.start()

    yield

    # Shutdown
    await scheduler.stop()
    await scheduler.wait_idle()
    if isinstance(store, RedisStore):
        await store.close()
    app.state.engine = None
    app.state.scheduler = None


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Hotel front desk room availability engine",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    # Exception handlers
    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        """Handle custom application exceptions."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=exc.headers,
        )

    # Include API routes
    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/health")
    async def health_check(request: Request) -> dict:
        """Health check endpoint."""
        engine = getattr(request.app.state, "engine", None)
        scheduler = getattr(request.app.state, "scheduler", None)
        return {
            "status": "healthy",
            "version": settings.app_version,
            "environment": settings.environment,
            "scheduler_running": bool(scheduler and scheduler.running),
            "snapshot_loaded": bool(engine and engine.has_snapshot),
            "timestamp": datetime.now(UTC).isoformat(),
        }

    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "frontdesk.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
