"""API router initialization."""

from fastapi import APIRouter
from loguru import logger

from clinic_scheduler.api.events import router as events_router
from clinic_scheduler.api.patients import router as patients_router
from clinic_scheduler.api.realtime import router as realtime_router

# Create main API router
router = APIRouter()

# Mount API endpoints
router.include_router(events_router, prefix="/doctors", tags=["doctors"])
router.include_router(patients_router, tags=["patients"])
router.include_router(realtime_router, tags=["realtime"])

logger.debug("API router initialized (doctor events, patients, realtime routers mounted)")
