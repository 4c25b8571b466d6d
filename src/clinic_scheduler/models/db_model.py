from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Field, Relationship

from clinic_scheduler.models.base_model import DoctorBase, EventBase, PatientBase
from clinic_scheduler.utils.time import utc_now


class Doctor(DoctorBase, table=True):
    """Doctor model."""

    __tablename__ = "doctors"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    email: str = Field(unique=True)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    events: list["Event"] = Relationship(back_populates="doctor")


class Patient(PatientBase, table=True):
    """Patient model."""

    __tablename__ = "patients"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    email: str = Field(unique=True)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    events: list["Event"] = Relationship(back_populates="patient")


class Event(EventBase, table=True):
    """Calendar event owned by a doctor and referencing a patient."""

    __tablename__ = "events"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    doctor_id: UUID = Field(foreign_key="doctors.id", index=True)
    patient_id: UUID = Field(foreign_key="patients.id", index=True)
    start_instant: datetime = Field(index=True)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    doctor: Doctor = Relationship(back_populates="events")
    patient: Patient = Relationship(back_populates="events")
