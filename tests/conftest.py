"""Shared fixtures: an in-memory SQLite database, in-memory caches and seeded people."""

from collections.abc import Generator
from typing import Any

import pytest
from fastapi.testclient import TestClient
from pydantic import BaseModel
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from clinic_scheduler.api.dependencies import Identity, get_current_identity
from clinic_scheduler.app import app
from clinic_scheduler.cache import InMemoryCacheBackend, KeyedCache, TimeRangeCache
from clinic_scheduler.database import set_engine
from clinic_scheduler.event_bus import get_event_bus
from clinic_scheduler.models.db_model import Doctor, Patient
from clinic_scheduler.realtime import EphemeralTokenStore, NotificationDispatcher
from clinic_scheduler.services.event_service import EventService
from clinic_scheduler.services.patient_service import PatientService
from clinic_scheduler.services.registry import get_service_registry
from clinic_scheduler.settings import Settings, get_settings


class RecordingBus:
    """Stands in for the event bus and keeps every published message."""

    def __init__(self):
        self.messages: list[BaseModel] = []

    def emit(self, message: BaseModel) -> None:
        self.messages.append(message)

    def of_type(self, message_type: type) -> list[Any]:
        return [m for m in self.messages if type(m) is message_type]


class FakeConnection:
    """Connection that records what it is sent, optionally failing every send."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[dict] = []

    async def send_json(self, data: Any, mode: str = "text") -> None:
        if self.fail:
            raise ConnectionError("socket closed")
        self.sent.append(data)


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine) -> Generator[Session]:
    with Session(engine) as session:
        yield session


@pytest.fixture
def cache_backend() -> InMemoryCacheBackend:
    return InMemoryCacheBackend()


@pytest.fixture
def events_cache(cache_backend) -> TimeRangeCache:
    return TimeRangeCache(cache_backend, ttl_seconds=300)


@pytest.fixture
def directory_cache(cache_backend) -> KeyedCache:
    return KeyedCache(cache_backend, ttl_seconds=300)


@pytest.fixture
def bus() -> RecordingBus:
    return RecordingBus()


@pytest.fixture
def patient_service(directory_cache) -> PatientService:
    return PatientService(directory_cache)


@pytest.fixture
def event_service(events_cache, bus, patient_service, settings) -> EventService:
    return EventService(events_cache=events_cache, bus=bus, patient_service=patient_service, settings=settings)


@pytest.fixture
def doctor(session) -> Doctor:
    doctor = Doctor(name="Dr. Sarah Chen", email="sarah.chen@nova-medicine.com")
    session.add(doctor)
    session.commit()
    session.refresh(doctor)
    return doctor


@pytest.fixture
def other_doctor(session) -> Doctor:
    doctor = Doctor(name="Dr. Marcus Webb", email="marcus.webb@nova-medicine.com")
    session.add(doctor)
    session.commit()
    session.refresh(doctor)
    return doctor


@pytest.fixture
def patient(session) -> Patient:
    patient = Patient(name="Emma Johnson", email="emma.johnson@email.com", timezone="Europe/Paris")
    session.add(patient)
    session.commit()
    session.refresh(patient)
    return patient


@pytest.fixture
def other_patient(session) -> Patient:
    patient = Patient(name="James Wilson", email="james.wilson@email.com")
    session.add(patient)
    session.commit()
    session.refresh(patient)
    return patient


class SignedIn:
    """Identity the API sees for the current request, switchable mid-test."""

    def __init__(self):
        self.identity: Identity | None = None

    def as_doctor(self, doctor: Doctor) -> None:
        self.identity = Identity(id=doctor.id, type="doctor")

    def as_patient(self, patient: Patient) -> None:
        self.identity = Identity(id=patient.id, type="patient")

    def sign_out(self) -> None:
        self.identity = None


@pytest.fixture
def signed_in() -> SignedIn:
    return SignedIn()


@pytest.fixture
def dispatcher() -> NotificationDispatcher:
    return NotificationDispatcher()


@pytest.fixture
def token_store(cache_backend) -> EphemeralTokenStore:
    return EphemeralTokenStore(cache_backend, ttl_seconds=60)


@pytest.fixture
def client(engine, events_cache, patient_service, dispatcher, token_store, signed_in, monkeypatch) -> Generator[TestClient]:
    """Test client running the full application lifespan against the test database.

    Services are swapped for instances built on the test caches once startup
    has registered the defaults. The caller's identity comes from ``signed_in``.
    """
    monkeypatch.setattr(get_settings(), "reminders_enabled", False)
    monkeypatch.setattr("clinic_scheduler.app.dispose_db", lambda: None)
    set_engine(engine)

    with TestClient(app) as test_client:
        registry = get_service_registry()
        registry.register_singleton(NotificationDispatcher, dispatcher)
        registry.register_singleton(EphemeralTokenStore, token_store)
        registry.register_singleton(PatientService, patient_service)
        registry.register_singleton(
            EventService, EventService(events_cache=events_cache, bus=get_event_bus(), patient_service=patient_service)
        )
        app.dependency_overrides[get_current_identity] = lambda: signed_in.identity
        yield test_client

    app.dependency_overrides.clear()
    set_engine(None)
