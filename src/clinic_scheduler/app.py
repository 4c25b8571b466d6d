"""Main FastAPI application module."""

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from starlette.middleware.sessions import SessionMiddleware

from clinic_scheduler.api.api_router import router as api_router
from clinic_scheduler.api.health_check import router as health_router
from clinic_scheduler.api.ping import router as ping_router
from clinic_scheduler.api.version import router as version_router
from clinic_scheduler.cache import get_cache_backend
from clinic_scheduler.database import dispose_db
from clinic_scheduler.event_bus import get_event_bus
from clinic_scheduler.events import register_event_handlers
from clinic_scheduler.exception_handlers import register_exception_handlers
from clinic_scheduler.logging import setup_logging, setup_sqlalchemy_logging
from clinic_scheduler.reminders import get_reminder_scanner
from clinic_scheduler.services.di import register_all_services
from clinic_scheduler.services.registry import get_service_registry
from clinic_scheduler.settings import Settings, get_settings
from clinic_scheduler.utils.version import get_version


def _log_server_endpoints_summary(settings: Settings) -> None:
    """Log the server URL and the main endpoints."""
    server_url = f"http://{settings.host}:{settings.port}"
    logger.info("Server running at: {}", server_url)

    endpoints = [
        ("Doctor events", "/doctors/events"),
        ("Patient events", "/patients/events"),
        ("Patient socket", "/patients/socket"),
        ("Health Check", "/health-check"),
        ("API Docs", "/docs"),
    ]
    logger.info("Available endpoints:")
    for name, path in endpoints:
        logger.info("   {}: {}{}", name, server_url, path)


@asynccontextmanager
async def app_lifespan(_app: FastAPI):
    """Handle startup and shutdown events for the main application."""
    settings = get_settings()
    _app.state.settings = settings  # type: ignore[attr-defined]

    setup_logging(log_level=settings.log_level)
    if settings.sql_log:
        setup_sqlalchemy_logging()

    logger.info("Registering services in the service registry")
    register_all_services(get_service_registry())
    register_event_handlers()

    # Handlers run on this loop, whichever thread emits
    bus = get_event_bus()
    bus.bind_loop(asyncio.get_running_loop())

    logger.info("Cache backend: {}", get_cache_backend().name)

    scanner = get_reminder_scanner()
    if settings.reminders_enabled:
        scanner.start()
    else:
        logger.info("Reminder scanner disabled")

    _log_server_endpoints_summary(settings)

    yield

    logger.info("Scheduling server shutting down")
    await scanner.stop()
    bus.bind_loop(None)
    get_cache_backend().close()
    dispose_db()


app = FastAPI(
    lifespan=app_lifespan,
    title="Clinic scheduler",
    description="Doctor calendars, patient schedules and live appointment notifications",
    version=get_version().version,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

global_settings = get_settings()

app.add_middleware(
    SessionMiddleware,
    secret_key=global_settings.session_secret,
    session_cookie=global_settings.session_cookie,
    max_age=global_settings.session_max_age_seconds,
    same_site="lax",
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=global_settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# System endpoints
app.include_router(health_router, prefix="")
app.include_router(ping_router, prefix="")
app.include_router(version_router, prefix="/version")

# Scheduling endpoints
app.include_router(api_router)
