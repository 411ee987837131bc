from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

import structlog
from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from app.core.config import settings
from app.core.errors import global_exception_handler, http_exception_handler

import app.models  # noqa: F401: register all models at startup

from app.modules.notifications.channels import ChannelAvailability
from app.modules.notifications.router import router as notifications_router
from app.modules.notifications.router import scheduler_router
from app.core.sentry import init_sentry

# ── Sentry: initialised before the FastAPI app is created ─────────────────────
init_sentry(settings.SENTRY_DSN, settings.SENTRY_ENVIRONMENT, settings.APP_VERSION)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
    logger.info("Starting TaskStudy API", env=settings.APP_ENV)
    availability = ChannelAvailability.from_settings(settings)
    logger.info(
        "notification_channels_resolved",
        email=availability.email,
        telegram=availability.telegram,
        whatsapp=availability.whatsapp,
        timezone=settings.NOTIFICATION_TIMEZONE,
    )
    yield
    logger.info("Shutting down TaskStudy API")


_is_prod = settings.APP_ENV == "production"

app = FastAPI(
    title="TaskStudy API",
    description="Academic task tracker: reminders, daily digests and periodic reports.",
    version="0.1.0",
    # Disable interactive docs in production; use /openapi.json directly if needed
    docs_url=None if _is_prod else "/docs",
    redoc_url=None if _is_prod else "/redoc",
    openapi_url=None if _is_prod else "/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Accept", "X-Request-ID", "X-Cron-Secret"],
)

app.add_exception_handler(HTTPException, http_exception_handler)  # type: ignore[arg-type]
app.add_exception_handler(Exception, global_exception_handler)


# ── X-API-Version response header ────────────────────────────────────────────


@app.middleware("http")
async def add_version_header(request: Request, call_next) -> Response:
    response = await call_next(request)
    response.headers["X-API-Version"] = "v1"
    return response


# ── Health check (root-level, not under /v1) ─────────────────────────────────


@app.get("/health")
async def health_check() -> dict:
    """Deep health check: probes PostgreSQL and Redis, reports channel availability."""
    checks: dict[str, dict] = {}

    # ── PostgreSQL ────────────────────────────────────────────────────────────
    try:
        from sqlalchemy import text
        from app.core.database import async_session_factory
        async with async_session_factory() as db:
            await db.execute(text("SELECT 1"))
        checks["postgresql"] = {"status": "healthy"}
    except Exception as exc:
        checks["postgresql"] = {"status": "unhealthy", "error": str(exc)}

    # ── Redis (Celery broker / results) ───────────────────────────────────────
    try:
        from redis.asyncio import from_url as redis_from_url
        r = redis_from_url(settings.REDIS_URL, socket_connect_timeout=2)
        await r.ping()
        await r.aclose()
        checks["redis"] = {"status": "healthy"}
    except Exception as exc:
        checks["redis"] = {"status": "unhealthy", "error": str(exc)}

    overall = (
        "healthy"
        if all(c["status"] == "healthy" for c in checks.values())
        else "degraded"
    )
    availability = ChannelAvailability.from_settings(settings)
    return {
        "status": overall,
        "service": "taskstudy-api",
        "checks": checks,
        "channels": {
            "email": availability.email,
            "telegram": availability.telegram,
            "whatsapp": availability.whatsapp,
        },
    }


# ── /v1 versioned router ──────────────────────────────────────────────────────

api_v1 = APIRouter(prefix="/v1")

api_v1.include_router(notifications_router)
api_v1.include_router(scheduler_router)

app.include_router(api_v1)
