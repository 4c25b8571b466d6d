"""Dependency injection setup module.

This module provides centralized service registration for both
FastAPI server and CLI applications.
"""

from loguru import logger

from clinic_scheduler.cache import TimeRangeCache, get_events_cache
from clinic_scheduler.realtime import EphemeralTokenStore, NotificationDispatcher, get_notification_dispatcher, get_token_store
from clinic_scheduler.services.event_service import EventService, get_event_service
from clinic_scheduler.services.health_check_service import HealthCheckService, get_health_check_service
from clinic_scheduler.services.patient_service import PatientService, get_patient_service
from clinic_scheduler.services.registry import ServiceRegistry


def register_core_services(registry: ServiceRegistry) -> None:
    """Register infrastructure services: caches, socket tokens, the dispatcher and health checks.

    Registered as factories because their get_*() functions already provide
    singleton behavior via @lru_cache.
    """
    logger.debug("Registering core services in DI container")

    registry.register_factory(TimeRangeCache, get_events_cache)
    registry.register_factory(EphemeralTokenStore, get_token_store)
    registry.register_factory(NotificationDispatcher, get_notification_dispatcher)
    registry.register_factory(HealthCheckService, get_health_check_service)


def register_app_services(registry: ServiceRegistry) -> None:
    """Register the scheduling services."""
    logger.debug("Registering application services in DI container")

    registry.register_factory(PatientService, get_patient_service)
    registry.register_factory(EventService, get_event_service)


def register_all_services(registry: ServiceRegistry) -> None:
    """Register both core and application services."""
    register_core_services(registry)
    register_app_services(registry)
