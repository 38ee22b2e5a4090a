"""
ThermoChat Backend API - Main Entry Point

FastAPI application for conversational, per-user room temperature control
with durable scheduled changes.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler  # type: ignore[import-untyped]
from apscheduler.triggers.interval import IntervalTrigger  # type: ignore[import-untyped]
from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from thermochat.api.dependencies import build_core
from thermochat.api.middleware import _VERSION, APIKeyMiddleware, RateLimitMiddleware
from thermochat.api.routes import api_router
from thermochat.config import get_settings
from thermochat.core import TickResult
from thermochat.models.database import close_db, get_session_maker, init_db

# Configure logging
settings_instance = get_settings()
logging.basicConfig(
    level=logging.DEBUG
    if settings_instance.debug
    else getattr(logging, settings_instance.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


# ============================================================================
# Application State
# ============================================================================


class AppState:
    """Centralized application state container."""

    def __init__(self) -> None:
        self.scheduler: AsyncIOScheduler | None = None
        self.startup_time: datetime | None = None
        self.is_healthy: bool = False
        self.last_tick: TickResult | None = None


app_state = AppState()


# ============================================================================
# Background Tasks
# ============================================================================


async def apply_scheduled_changes() -> None:
    """Interval job: run one scheduler tick over the shared session factory."""
    runner = build_core(get_session_maker(), settings_instance).runner
    result = await runner.tick()
    app_state.last_tick = result
    if not result.ok:
        logger.warning("Scheduled tick reported an error; retrying next interval")


def init_scheduler() -> AsyncIOScheduler:
    """Initialize the background task scheduler."""
    scheduler = AsyncIOScheduler(
        timezone="UTC",
        job_defaults={
            "coalesce": True,
            "max_instances": 1,
            "misfire_grace_time": 60,
        },
    )

    scheduler.add_job(
        apply_scheduled_changes,
        IntervalTrigger(seconds=settings_instance.scheduler_interval_seconds),
        id="apply_scheduled_changes",
        name="Apply Scheduled Temperature Changes",
        replace_existing=True,
    )

    return scheduler


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifespan manager for startup and shutdown.
    """
    logger.info("Starting ThermoChat API...")

    try:
        logger.info("Connecting to database: %s", settings_instance.database_url.rsplit("@", 1)[-1])
        await init_db()

        if settings_instance.scheduler_enabled:
            logger.info(
                "Starting background scheduler (every %ss)...",
                settings_instance.scheduler_interval_seconds,
            )
            app_state.scheduler = init_scheduler()
            app_state.scheduler.start()
        else:
            logger.info("Background scheduler disabled; relying on the external tick trigger")

        app_state.startup_time = datetime.now(UTC)
        app_state.is_healthy = True
        logger.info("ThermoChat API started successfully")
    except Exception as e:
        logger.error("Startup failed: %s", e)
        app_state.is_healthy = False
        raise

    yield

    # Shutdown
    logger.info("Shutting down ThermoChat API...")
    app_state.is_healthy = False

    if app_state.scheduler:
        logger.info("Stopping background scheduler...")
        app_state.scheduler.shutdown(wait=True)
        app_state.scheduler = None

    logger.info("Closing database connections...")
    await close_db()

    logger.info("ThermoChat API shutdown complete")


# ============================================================================
# FastAPI Application
# ============================================================================

settings = settings_instance

app = FastAPI(
    title="ThermoChat API",
    description="""
    ThermoChat Backend API for conversational room temperature control.

    ## Features

    * **Chat** - Natural language temperature reads and changes
    * **Rooms** - Per-user rooms, created on first use
    * **Scheduling** - Delayed changes that survive restarts
    """,
    version=_VERSION,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    openapi_url="/openapi.json" if settings.debug else None,
    lifespan=lifespan,
)


# ============================================================================
# Middleware (applied in reverse order - last added = outermost)
# ============================================================================

app.add_middleware(RateLimitMiddleware, requests_per_minute=120)

_cors_origins = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Process-Time"],
    max_age=600,
)

if settings.api_key:
    logger.info("API key authentication enabled")
    # The tick trigger carries its own cron secret
    _public = ["/api/v1/scheduler/tick"] if settings.cron_secret else []
    app.add_middleware(APIKeyMiddleware, api_key=settings.api_key, public_paths=_public)


@app.middleware("http")
async def request_logging_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """Log all requests with timing and correlation IDs."""
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    start_time = time.perf_counter()

    request.state.request_id = request_id

    try:
        response = await call_next(request)
    except Exception as e:
        logger.error("Request failed: %s", e, exc_info=True)
        raise

    process_time = time.perf_counter() - start_time
    response.headers["X-Request-ID"] = request_id
    response.headers["X-Process-Time"] = f"{process_time:.4f}"

    logger.info(
        "%s %s status=%s duration=%.4fs",
        request.method,
        request.url.path,
        response.status_code,
        process_time,
    )
    return response


# ============================================================================
# Route Registration
# ============================================================================

app.include_router(api_router)


# ============================================================================
# Health Endpoints
# ============================================================================


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, object]:
    """Health check with database and scheduler status."""
    components: dict[str, object] = {}
    overall = "healthy"

    try:
        async with get_session_maker()() as db:
            await db.execute(text("SELECT 1"))
        components["database"] = {"status": "healthy"}
    except Exception as e:
        components["database"] = {"status": "unhealthy", "error": str(e)}
        overall = "degraded"

    if app_state.scheduler and app_state.scheduler.running:
        last = app_state.last_tick
        components["scheduler"] = {
            "status": "healthy",
            "last_tick": last.as_dict() if last else None,
        }
    elif settings.scheduler_enabled:
        components["scheduler"] = {"status": "stopped"}
        overall = "degraded"
    else:
        components["scheduler"] = {"status": "external"}

    return {
        "status": overall,
        "timestamp": datetime.now(UTC).isoformat(),
        "components": components,
    }


@app.get("/health/ready", tags=["Health"], response_model=None)
async def readiness_check() -> Response:
    """Readiness probe."""
    if not app_state.is_healthy:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready"},
        )
    return JSONResponse(content={"status": "ready"})


@app.get("/health/live", tags=["Health"])
async def liveness_check() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "alive"}


@app.get("/", tags=["Root"])
async def api_root() -> dict[str, object]:
    api_prefix = api_router.prefix
    return {
        "name": "ThermoChat API",
        "version": _VERSION,
        "endpoints": {
            "chat": f"{api_prefix}/chat",
            "rooms": f"{api_prefix}/rooms",
            "scheduler": f"{api_prefix}/scheduler/tick",
        },
        "health": "/health",
    }


# ============================================================================
# Exception Handlers
# ============================================================================


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error("Unhandled exception: %s", exc, exc_info=True)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": 500,
                "message": "An internal error occurred" if not settings.debug else str(exc),
                "request_id": getattr(request.state, "request_id", None),
            },
        },
    )


# ============================================================================
# CLI Entry Point
# ============================================================================


def run() -> None:
    import uvicorn

    uvicorn.run(
        "thermochat.api.main:app",
        host=settings.host,
        port=settings.port,
        loop="asyncio",
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
        access_log=True,
    )


if __name__ == "__main__":
    run()
